# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Local-disk storage for roster uploads.

Uploaded spreadsheets are kept as audit artifacts next to the rows that were
persisted from them. Files are written under a per-owner directory with a
unique prefix, and the returned reference is the path relative to the
storage root.
"""

import logging
import re
from pathlib import Path
from typing import Protocol
from uuid import uuid4

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^\w.\-]+", re.UNICODE)


class StorageError(Exception):
    """Raised when a roster file cannot be stored or read."""


class RosterFileStorage(Protocol):
    """Storage collaborator for roster uploads."""

    def save(self, owner_id: str, filename: str, content: bytes) -> str: ...

    def read(self, file_ref: str) -> bytes: ...

    def delete(self, file_ref: str) -> None: ...


def _safe_name(filename: str) -> str:
    name = Path(filename).name.strip()
    name = _UNSAFE_CHARS.sub("_", name)
    return name or "roster"


class LocalRosterFileStorage:
    """Stores roster files on the local filesystem.

    Attributes:
        root: Directory under which files are written.
    """

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def save(self, owner_id: str, filename: str, content: bytes) -> str:
        """Write a roster file and return its reference.

        Args:
            owner_id: Uploading user, used as the subdirectory.
            filename: Original client filename.
            content: Raw file bytes.

        Returns:
            Reference of the stored file, relative to the storage root.

        Raises:
            StorageError: If the file cannot be written.
        """
        owner_dir = self.root / _safe_name(owner_id)
        stored_name = f"{uuid4().hex}_{_safe_name(filename)}"
        try:
            owner_dir.mkdir(parents=True, exist_ok=True)
            (owner_dir / stored_name).write_bytes(content)
        except OSError as e:
            raise StorageError(f"Failed to store roster file {filename}: {e}") from e

        file_ref = f"{owner_dir.name}/{stored_name}"
        logger.info("Stored roster file: ref=%s, size=%s", file_ref, len(content))
        return file_ref

    def _resolve(self, file_ref: str) -> Path:
        root = self.root.resolve()
        path = (root / file_ref).resolve()
        if root not in path.parents:
            raise StorageError(f"Invalid roster file reference: {file_ref}")
        return path

    def read(self, file_ref: str) -> bytes:
        """Read a stored roster file.

        Raises:
            StorageError: If the reference escapes the root or cannot be read.
        """
        path = self._resolve(file_ref)
        try:
            return path.read_bytes()
        except OSError as e:
            raise StorageError(f"Failed to read roster file {file_ref}: {e}") from e

    def delete(self, file_ref: str) -> None:
        """Remove a stored roster file. A missing file is not an error.

        Raises:
            StorageError: If the reference escapes the root or cannot be removed.
        """
        path = self._resolve(file_ref)
        try:
            path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to delete roster file {file_ref}: {e}") from e
        logger.info("Deleted roster file: ref=%s", file_ref)
