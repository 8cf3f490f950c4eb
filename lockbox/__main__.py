import sys

from lockbox.main import main

sys.exit(main())
