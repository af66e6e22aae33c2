# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for local roster file storage."""

from pathlib import Path

import pytest

from src.infrastructure.storage import LocalRosterFileStorage, StorageError

pytestmark = pytest.mark.unit


@pytest.fixture
def storage(tmp_path: Path) -> LocalRosterFileStorage:
    return LocalRosterFileStorage(tmp_path / "rosters")


class TestSaveAndRead:
    """Stored files come back unchanged under their reference."""

    def test_read_returns_saved_bytes(self, storage: LocalRosterFileStorage) -> None:
        file_ref = storage.save("owner-7", "october.csv", b"name,email,phone\n")

        assert storage.read(file_ref) == b"name,email,phone\n"

    def test_reference_is_relative_to_root(self, storage: LocalRosterFileStorage) -> None:
        file_ref = storage.save("owner-7", "october.csv", b"x")

        owner_dir, stored_name = file_ref.split("/")
        assert owner_dir == "owner-7"
        assert stored_name.endswith("_october.csv")
        assert (storage.root / file_ref).is_file()

    def test_same_name_twice_keeps_both(self, storage: LocalRosterFileStorage) -> None:
        first = storage.save("owner-7", "roster.csv", b"first")
        second = storage.save("owner-7", "roster.csv", b"second")

        assert first != second
        assert storage.read(first) == b"first"
        assert storage.read(second) == b"second"

    @pytest.mark.parametrize(
        ("filename", "suffix"),
        [
            ("../../etc/passwd", "_passwd"),
            ("my roster (final).xlsx", "_my_roster_final_.xlsx"),
            ("", "_roster"),
        ],
    )
    def test_client_filename_is_sanitized(
        self,
        storage: LocalRosterFileStorage,
        filename: str,
        suffix: str,
    ) -> None:
        file_ref = storage.save("owner-7", filename, b"x")

        assert file_ref.startswith("owner-7/")
        assert file_ref.endswith(suffix)

    def test_missing_file(self, storage: LocalRosterFileStorage) -> None:
        with pytest.raises(StorageError, match="Failed to read"):
            storage.read("owner-7/missing.csv")


class TestReferenceEscape:
    """References that point outside the storage root are refused."""

    @pytest.mark.parametrize(
        "file_ref",
        ["../outside.csv", "owner-7/../../outside.csv", "/etc/passwd"],
    )
    def test_read_outside_root(
        self,
        storage: LocalRosterFileStorage,
        tmp_path: Path,
        file_ref: str,
    ) -> None:
        (tmp_path / "outside.csv").write_bytes(b"secret")

        with pytest.raises(StorageError, match="Invalid roster file reference"):
            storage.read(file_ref)

    def test_delete_outside_root(self, storage: LocalRosterFileStorage, tmp_path: Path) -> None:
        outside = tmp_path / "outside.csv"
        outside.write_bytes(b"secret")

        with pytest.raises(StorageError, match="Invalid roster file reference"):
            storage.delete("../outside.csv")

        assert outside.exists()

    def test_root_itself_is_not_a_file(self, storage: LocalRosterFileStorage) -> None:
        with pytest.raises(StorageError, match="Invalid roster file reference"):
            storage.read(".")


class TestDelete:
    """Removing stored files."""

    def test_delete_removes_file(self, storage: LocalRosterFileStorage) -> None:
        file_ref = storage.save("owner-7", "october.csv", b"x")

        storage.delete(file_ref)

        assert not (storage.root / file_ref).exists()
        with pytest.raises(StorageError):
            storage.read(file_ref)

    def test_delete_missing_file_is_quiet(self, storage: LocalRosterFileStorage) -> None:
        storage.delete("owner-7/never-written.csv")
