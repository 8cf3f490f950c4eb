# Tests for the vault codec and file storage
#
# Coverage:
#   - Canonical JSON serialization (field order, compact, unicode)
#   - Deserialization failures reported as DecodeError
#   - Text with no UTF-8 form (lone surrogates) rejected both ways
#   - encode/decode round trip for every suite, including empty vaults
#   - Wrong secret: AES-GCM -> AuthenticationError, stream ciphers -> DecodeError
#   - StorageManager read/write, missing files, owner-only permissions
#   - Keyfile read/write

import json
import os
import stat
import sys

import pytest

from lockbox.crypto import CipherSuite, CryptoManager, derive_key
from lockbox.errors import (
    AuthenticationError,
    DecodeError,
    EncodeError,
    VaultError,
    VaultIOError,
    WrongSecretError,
)
from lockbox.storage import (
    PasswordEntry,
    StorageManager,
    decode,
    deserialize_entries,
    encode,
    read_keyfile,
    serialize_entries,
    write_keyfile,
)


ALL_SUITES = list(CipherSuite)
KEY = derive_key(b"hunter2")


@pytest.fixture
def entries():
    return [
        PasswordEntry(title="mail", username="a@b.com", password="p", notes=""),
        PasswordEntry(title="bank", username="me", password="s3cr3t, \"quoted\"", notes="line1\nline2"),
        PasswordEntry(title="日本", username="ünïcode", password="🔑", notes=""),
    ]


# ── Serialization ───────────────────────────────────────────────────


class TestSerialization:
    def test_empty_list(self):
        assert serialize_entries([]) == b"[]"

    def test_field_order_and_compact_form(self):
        data = serialize_entries([PasswordEntry("t", "u", "p", "n")])
        assert data == b'[{"title":"t","username":"u","password":"p","notes":"n"}]'

    def test_non_ascii_is_kept_as_utf8(self):
        data = serialize_entries([PasswordEntry("日本", "", "", "")])
        assert "日本".encode("utf-8") in data

    def test_round_trip(self, entries):
        assert deserialize_entries(serialize_entries(entries)) == entries

    def test_extra_keys_are_ignored(self):
        data = b'[{"title":"t","username":"u","password":"p","notes":"n","url":"x"}]'
        assert deserialize_entries(data) == [PasswordEntry("t", "u", "p", "n")]

    @pytest.mark.parametrize("payload", [
        b"\xff\xfe\xfd",
        b'[{"title":',
        b"not json",
        b'{"title":"t"}',
        b"42",
        b'["string"]',
        b'[{"title":"t","username":"u","password":"p"}]',
        b'[{"title":1,"username":"u","password":"p","notes":""}]',
    ])
    def test_invalid_payloads(self, payload):
        with pytest.raises(DecodeError):
            deserialize_entries(payload)

    def test_lone_surrogate_escape_is_rejected(self):
        data = b'[{"title":"\\ud800","username":"u","password":"p","notes":""}]'
        with pytest.raises(DecodeError):
            deserialize_entries(data)

    def test_paired_surrogate_escape_is_accepted(self):
        data = b'[{"title":"\\ud83d\\udd11","username":"u","password":"p","notes":""}]'
        assert deserialize_entries(data)[0].title == "\U0001f511"

    def test_unencodable_text_is_a_vault_error(self):
        with pytest.raises(EncodeError) as exc:
            serialize_entries([PasswordEntry("\ud800", "u", "p", "")])
        assert isinstance(exc.value, VaultError)


# ── Codec ───────────────────────────────────────────────────────────


class TestCodec:
    @pytest.mark.parametrize("suite", ALL_SUITES)
    def test_round_trip(self, suite, entries):
        assert decode(encode(entries, KEY, suite), KEY, suite) == entries

    @pytest.mark.parametrize("suite", ALL_SUITES)
    def test_empty_vault_round_trip(self, suite):
        blob = encode([], KEY, suite)
        assert blob
        assert decode(blob, KEY, suite) == []

    def test_aes_wrong_secret_is_authentication_error(self, entries):
        blob = encode(entries, KEY, CipherSuite.AES256GCM)
        with pytest.raises(AuthenticationError):
            decode(blob, derive_key(b"wrong"), CipherSuite.AES256GCM)

    @pytest.mark.parametrize("suite", [CipherSuite.SALSA20, CipherSuite.CHACHA20])
    def test_stream_wrong_secret_is_decode_error(self, suite, entries):
        blob = encode(entries, KEY, suite)
        with pytest.raises(DecodeError):
            decode(blob, derive_key(b"wrong"), suite)

    @pytest.mark.parametrize("suite", [CipherSuite.SALSA20, CipherSuite.CHACHA20])
    def test_corrupted_payload_rejected_at_parse(self, suite):
        blob = CryptoManager(suite).encrypt(b'[{"title":"mail",', KEY)
        with pytest.raises(DecodeError):
            decode(blob, KEY, suite)

    def test_wrong_suite_is_reported_as_wrong_secret(self, entries):
        blob = encode(entries, KEY, CipherSuite.CHACHA20)
        with pytest.raises(WrongSecretError):
            decode(blob, KEY, CipherSuite.AES256GCM)

    def test_stream_blob_with_lone_surrogate_is_rejected(self):
        plaintext = b'[{"title":"\\ud800","username":"u","password":"p","notes":""}]'
        blob = CryptoManager(CipherSuite.SALSA20).encrypt(plaintext, KEY)
        with pytest.raises(DecodeError):
            decode(blob, KEY, CipherSuite.SALSA20)

    def test_blob_has_no_header(self):
        blob = encode([], KEY, CipherSuite.SALSA20)
        assert len(blob) == len(b"[]")


# ── StorageManager ──────────────────────────────────────────────────


class TestStorageManager:
    @pytest.mark.parametrize("suite", ALL_SUITES)
    def test_save_and_load(self, tmp_path, suite, entries):
        storage = StorageManager(str(tmp_path / "vault.kmh"), suite)
        storage.save(entries, KEY)
        assert os.path.isfile(storage.filepath)
        assert StorageManager(storage.filepath, suite).load(KEY) == entries

    def test_file_is_exactly_the_blob(self, tmp_path, entries):
        storage = StorageManager(str(tmp_path / "vault.kmh"), CipherSuite.AES256GCM)
        storage.save(entries, KEY)
        with open(storage.filepath, "rb") as f:
            assert f.read() == encode(entries, KEY, CipherSuite.AES256GCM)

    def test_save_replaces_longer_file(self, tmp_path, entries):
        storage = StorageManager(str(tmp_path / "vault.kmh"), CipherSuite.SALSA20)
        storage.save(entries, KEY)
        storage.save([], KEY)
        assert storage.load(KEY) == []
        assert not os.path.exists(storage.filepath + ".tmp")

    def test_create_new_vault_is_empty(self, tmp_path):
        storage = StorageManager(str(tmp_path / "vault.kmh"), CipherSuite.CHACHA20)
        storage.create_new_vault(KEY)
        assert storage.load(KEY) == []

    def test_load_missing_file(self, tmp_path):
        storage = StorageManager(str(tmp_path / "missing.kmh"), CipherSuite.AES256GCM)
        with pytest.raises(VaultIOError) as exc:
            storage.load(KEY)
        assert exc.value.path == storage.filepath

    def test_save_to_missing_directory(self, tmp_path):
        storage = StorageManager(str(tmp_path / "nope" / "vault.kmh"), CipherSuite.AES256GCM)
        with pytest.raises(VaultIOError):
            storage.save([], KEY)

    def test_unencodable_save_leaves_file_untouched(self, tmp_path, entries):
        storage = StorageManager(str(tmp_path / "vault.kmh"), CipherSuite.AES256GCM)
        storage.save(entries, KEY)
        with pytest.raises(EncodeError):
            storage.save([PasswordEntry("\ud800", "u", "p", "")], KEY)
        assert storage.load(KEY) == entries
        assert not os.path.exists(storage.filepath + ".tmp")

    def test_load_wrong_secret(self, tmp_path, entries):
        storage = StorageManager(str(tmp_path / "vault.kmh"), CipherSuite.AES256GCM)
        storage.save(entries, KEY)
        with pytest.raises(AuthenticationError):
            storage.load(derive_key(b"wrong"))

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_vault_is_owner_only(self, tmp_path):
        storage = StorageManager(str(tmp_path / "vault.kmh"), CipherSuite.AES256GCM)
        storage.save([], KEY)
        assert stat.S_IMODE(os.stat(storage.filepath).st_mode) == 0o600


# ── Keyfiles ────────────────────────────────────────────────────────


class TestKeyfile:
    def test_write_and_read(self, tmp_path):
        path = str(tmp_path / "vault.key")
        write_keyfile(path, b"\x00\x01secret")
        assert read_keyfile(path) == b"\x00\x01secret"

    def test_never_overwrites(self, tmp_path):
        path = str(tmp_path / "vault.key")
        write_keyfile(path, b"first")
        with pytest.raises(VaultIOError):
            write_keyfile(path, b"second")
        assert read_keyfile(path) == b"first"

    def test_missing(self, tmp_path):
        with pytest.raises(VaultIOError):
            read_keyfile(str(tmp_path / "missing.key"))

    def test_empty(self, tmp_path):
        path = tmp_path / "empty.key"
        path.write_bytes(b"")
        with pytest.raises(VaultIOError):
            read_keyfile(str(path))

    @pytest.mark.skipif(sys.platform == "win32", reason="POSIX permissions")
    def test_keyfile_is_owner_only(self, tmp_path):
        path = str(tmp_path / "vault.key")
        write_keyfile(path, b"secret")
        assert stat.S_IMODE(os.stat(path).st_mode) == 0o600

    def test_keyfile_unlocks_like_password_bytes(self, tmp_path):
        path = str(tmp_path / "vault.key")
        write_keyfile(path, b"hunter2")
        assert derive_key(read_keyfile(path)) == KEY


def test_plaintext_is_json_array():
    blob = encode([PasswordEntry("t", "u", "p", "n")], KEY, CipherSuite.CHACHA20)
    plaintext = CryptoManager(CipherSuite.CHACHA20).decrypt(blob, KEY)
    assert json.loads(plaintext) == [{"title": "t", "username": "u", "password": "p", "notes": "n"}]
