# Tests for the in-memory vault session
#
# Coverage:
#   - Opening and creating vaults (password and keyfile secrets)
#   - Add / Remove / Modify / Reveal / Copy invariants
#   - Index boundaries (len - 1, len, > len, negative)
#   - Save, abandon, and the state transitions between them
#   - Keyfile vault creation and cleanup after a failed write
#   - End-to-end "hunter2" scenario

import os

import pytest

from lockbox.crypto import CipherSuite, generate_keyfile_secret
from lockbox.errors import (
    AuthenticationError,
    EncodeError,
    IndexOutOfRangeError,
    VaultIOError,
    VaultStateError,
    WrongSecretError,
)
from lockbox.session import SessionState, VaultSession
from lockbox.storage import PasswordEntry, StorageManager, read_keyfile, write_keyfile


ALL_SUITES = list(CipherSuite)


@pytest.fixture
def vault_path(tmp_path):
    return str(tmp_path / "vault.kmh")


@pytest.fixture
def session(vault_path):
    """Unlocked AES session holding three entries."""
    s = VaultSession.create(StorageManager(vault_path, CipherSuite.AES256GCM), "hunter2")
    s.add("mail", "a@b.com", "p", "")
    s.add("bank", "me", "s3cr3t", "pin 1234")
    s.add("forum", "nick", "pw", "old")
    return s


# ── Unlocking ───────────────────────────────────────────────────────


class TestUnlock:
    def test_new_session_is_locked(self, vault_path):
        s = VaultSession(StorageManager(vault_path, CipherSuite.AES256GCM), b"\x00" * 32)
        assert s.state is SessionState.LOCKED
        with pytest.raises(VaultStateError):
            s.add("t", "u", "p", "n")

    @pytest.mark.parametrize("suite", ALL_SUITES)
    def test_create_then_open(self, vault_path, suite):
        created = VaultSession.create(StorageManager(vault_path, suite), "hunter2")
        assert created.state is SessionState.SAVED
        assert len(created) == 0

        opened = VaultSession.open(StorageManager(vault_path, suite), "hunter2")
        assert opened.state is SessionState.UNLOCKED
        assert opened.entries == []

    def test_keyfile_secret(self, vault_path):
        secret = generate_keyfile_secret(1024)
        s = VaultSession.create(StorageManager(vault_path, CipherSuite.SALSA20), secret)
        s.add("t", "u", "p", "n")
        s.save()
        reopened = VaultSession.open(StorageManager(vault_path, CipherSuite.SALSA20), secret)
        assert reopened.entries == [PasswordEntry("t", "u", "p", "n")]

    @pytest.mark.parametrize("suite", ALL_SUITES)
    def test_wrong_secret(self, vault_path, suite):
        s = VaultSession.create(StorageManager(vault_path, suite), "hunter2")
        s.add("mail", "a@b.com", "p", "")
        s.save()
        with pytest.raises(WrongSecretError):
            VaultSession.open(StorageManager(vault_path, suite), "wrong")

    def test_create_with_keyfile(self, vault_path, tmp_path):
        keyfile = str(tmp_path / "vault.key")
        created = VaultSession.create_with_keyfile(StorageManager(vault_path, CipherSuite.CHACHA20), keyfile, 1024)
        assert created.state is SessionState.SAVED
        secret = read_keyfile(keyfile)
        assert len(secret) == 1024
        assert VaultSession.open(StorageManager(vault_path, CipherSuite.CHACHA20), secret).entries == []

    def test_failed_keyfile_vault_leaves_no_keyfile(self, tmp_path):
        keyfile = str(tmp_path / "vault.key")
        storage = StorageManager(str(tmp_path / "missing-dir" / "vault.kmh"), CipherSuite.AES256GCM)
        for _ in range(2):
            with pytest.raises(VaultIOError):
                VaultSession.create_with_keyfile(storage, keyfile)
            assert not os.path.exists(keyfile)

    def test_existing_keyfile_is_kept(self, vault_path, tmp_path):
        keyfile = str(tmp_path / "vault.key")
        write_keyfile(keyfile, b"old")
        with pytest.raises(VaultIOError):
            VaultSession.create_with_keyfile(StorageManager(vault_path, CipherSuite.AES256GCM), keyfile)
        assert read_keyfile(keyfile) == b"old"
        assert not os.path.exists(vault_path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(VaultIOError):
            VaultSession.open(StorageManager(str(tmp_path / "missing.kmh"), CipherSuite.AES256GCM), "x")


# ── CRUD ────────────────────────────────────────────────────────────


class TestAdd:
    def test_appends_exact_values(self, session):
        before = len(session)
        entry = session.add("  spaced  ", "", "pw", "")
        assert len(session) == before + 1
        assert session.entries[-1] == entry == PasswordEntry("  spaced  ", "", "pw", "")

    def test_marks_dirty(self, session):
        session.save()
        assert not session.is_dirty
        session.add("t", "u", "p", "n")
        assert session.is_dirty
        assert session.state is SessionState.UNLOCKED


class TestRemove:
    def test_keeps_relative_order(self, session):
        removed = session.remove(1)
        assert removed.title == "bank"
        assert [e.title for e in session.entries] == ["mail", "forum"]

    def test_last_valid_index(self, session):
        session.remove(len(session) - 1)
        assert [e.title for e in session.entries] == ["mail", "bank"]

    @pytest.mark.parametrize("offset", [0, 1, 10])
    def test_out_of_range(self, session, offset):
        index = len(session) + offset
        with pytest.raises(IndexOutOfRangeError) as exc:
            session.remove(index)
        assert exc.value.index == index
        assert len(session) == 3

    def test_negative_index(self, session):
        with pytest.raises(IndexOutOfRangeError):
            session.remove(-1)


class TestModify:
    def test_blank_fields_leave_entry_unchanged(self, session):
        before = session.entries[1].to_dict()
        session.modify(1, title="", username="   ", password="\t", notes="\n")
        assert session.entries[1].to_dict() == before

    def test_missing_fields_leave_entry_unchanged(self, session):
        before = session.entries[0].to_dict()
        session.modify(0)
        assert session.entries[0].to_dict() == before

    def test_replaces_only_non_blank_fields(self, session):
        entry = session.modify(1, title="", username="new-user", password="", notes=" kept as typed ")
        assert entry == PasswordEntry("bank", "new-user", "s3cr3t", " kept as typed ")
        assert session.entries[1] == entry

    def test_last_valid_index(self, session):
        session.modify(2, title="renamed")
        assert session.entries[2].title == "renamed"

    @pytest.mark.parametrize("offset", [0, 1])
    def test_out_of_range(self, session, offset):
        with pytest.raises(IndexOutOfRangeError):
            session.modify(len(session) + offset, title="x")


class TestReveal:
    def test_reveal_and_copy(self, session):
        assert session.reveal_password(1) == "s3cr3t"
        assert session.copy_password(1) == "s3cr3t"
        assert len(session) == 3

    def test_read_only(self, session):
        session.save()
        session.reveal_password(0)
        session.copy_password(0)
        assert session.state is SessionState.SAVED
        assert not session.is_dirty

    @pytest.mark.parametrize("offset", [0, 1])
    def test_out_of_range(self, session, offset):
        with pytest.raises(IndexOutOfRangeError):
            session.reveal_password(len(session) + offset)
        with pytest.raises(IndexOutOfRangeError):
            session.copy_password(len(session) + offset)

    def test_last_valid_index(self, session):
        assert session.reveal_password(len(session) - 1) == "pw"

    def test_masked_rows(self, session):
        assert session.masked_rows()[1] == (1, "bank", "me", "******", "pin 1234")


# ── Save and abandon ────────────────────────────────────────────────


class TestLifecycle:
    def test_save_persists(self, session, vault_path):
        session.save()
        assert session.state is SessionState.SAVED
        reopened = VaultSession.open(StorageManager(vault_path, CipherSuite.AES256GCM), "hunter2")
        assert reopened.entries == session.entries

    def test_abandon_discards_unsaved_changes(self, session, vault_path):
        session.save()
        session.add("unsaved", "u", "p", "")
        session.abandon()
        assert session.state is SessionState.ABANDONED
        reopened = VaultSession.open(StorageManager(vault_path, CipherSuite.AES256GCM), "hunter2")
        assert [e.title for e in reopened.entries] == ["mail", "bank", "forum"]

    def test_abandoned_session_rejects_operations(self, session):
        session.abandon()
        with pytest.raises(VaultStateError):
            session.add("t", "u", "p", "n")
        with pytest.raises(VaultStateError):
            session.save()
        with pytest.raises(VaultStateError):
            session.entries

    def test_save_failure_keeps_changes(self, session, tmp_path):
        session.storage = StorageManager(str(tmp_path / "gone" / "vault.kmh"), CipherSuite.AES256GCM)
        with pytest.raises(VaultIOError):
            session.save()
        assert session.is_dirty
        assert session.state is SessionState.UNLOCKED
        assert len(session) == 3

    def test_entries_is_a_copy(self, session):
        session.entries.clear()
        assert len(session) == 3

    def test_returned_entries_do_not_alias_stored_ones(self, session):
        session.save()
        session.entries[0].title = "changed"
        session.get(1).password = "changed"
        session.add("t", "u", "p", "n").notes = "changed"
        session.modify(2, notes="new").title = "changed"
        assert [e.title for e in session.entries] == ["mail", "bank", "forum", "t"]
        assert session.reveal_password(1) == "s3cr3t"
        assert session.entries[3].notes == "n"
        assert session.entries[2].notes == "new"

    def test_reading_entries_keeps_saved_state(self, session):
        session.save()
        session.entries[0].title = "changed"
        assert session.state is SessionState.SAVED
        assert not session.is_dirty
        assert session.get(0).title == "mail"

    def test_unencodable_text_fails_save_as_vault_error(self, session, vault_path):
        session.save()
        session.add("\ud800", "u", "p", "")
        with pytest.raises(EncodeError):
            session.save()
        assert session.is_dirty
        assert session.state is SessionState.UNLOCKED
        reopened = VaultSession.open(StorageManager(vault_path, CipherSuite.AES256GCM), "hunter2")
        assert len(reopened) == 3


# ── Scenario ────────────────────────────────────────────────────────


def test_hunter2_scenario(vault_path):
    storage = StorageManager(vault_path, CipherSuite.AES256GCM)
    session = VaultSession.create(storage, "hunter2")
    session.save()

    session = VaultSession.open(StorageManager(vault_path, CipherSuite.AES256GCM), "hunter2")
    assert session.entries == []

    session.add(title="mail", username="a@b.com", password="p", notes="")
    session.save()

    session = VaultSession.open(StorageManager(vault_path, CipherSuite.AES256GCM), "hunter2")
    assert session.entries == [PasswordEntry(title="mail", username="a@b.com", password="p", notes="")]

    with pytest.raises(AuthenticationError):
        VaultSession.open(StorageManager(vault_path, CipherSuite.AES256GCM), "wrong")
