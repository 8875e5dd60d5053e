"""File-based snapshot store.

This adapter implements the SnapshotStore protocol with one JSON document
per destination::

    root_dir/
        <destination>.json

Writes are atomic: the document is written to a temporary file in the same
directory, flushed (and fsynced in FSYNC mode), then renamed over the
previous snapshot with ``os.replace``. A crash mid-write leaves the old
snapshot intact.

Thread Safety:
    Single-writer assumed. The persistence queue serializes all writes.
"""

from __future__ import annotations

import json
import os
import tempfile
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from tabular_store.domain.entities import MalformedSnapshotError, format_timestamp
from tabular_store.ports.outbound.snapshot_store import PersistenceFailure, SyncMode


SNAPSHOT_SUFFIX = ".json"


class FileSnapshotStore:
    """File-based implementation of the SnapshotStore protocol.

    Attributes:
        root_dir: Directory holding snapshot files.
        sync_mode: Whether snapshots are fsynced before replacing the old one.
    """

    def __init__(
        self,
        root_dir: str | Path,
        sync_mode: SyncMode = SyncMode.FSYNC,
    ) -> None:
        """Initialize the store.

        The root directory is created lazily on the first write.

        Args:
            root_dir: Directory for snapshot files.
            sync_mode: Durability mode for writes.
        """
        self._root_dir = Path(root_dir)
        self._sync_mode = sync_mode

    @property
    def root_dir(self) -> Path:
        return self._root_dir

    @property
    def sync_mode(self) -> SyncMode:
        return self._sync_mode

    def path_for(self, destination: str) -> Path:
        """Get the file path for a destination."""
        # Keep destinations inside root_dir
        safe = destination.replace("/", "_").replace("\\", "_")
        return self._root_dir / f"{safe}{SNAPSHOT_SUFFIX}"

    def location(self, destination: str) -> str:
        return str(self.path_for(destination))

    def write(self, destination: str, payload: dict[str, Any]) -> None:
        """Atomically replace the snapshot file for destination.

        Raises:
            PersistenceFailure: If encoding or any filesystem step fails.
        """
        path = self.path_for(destination)
        try:
            document = json.dumps(payload, ensure_ascii=False, allow_nan=False)
            path.parent.mkdir(parents=True, exist_ok=True)
            self._write_atomic(path, document)
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailure(destination, str(e)) from e

    def _write_atomic(self, path: Path, document: str) -> None:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(document)
                f.flush()
                if self._sync_mode == SyncMode.FSYNC:
                    os.fsync(f.fileno())
            os.replace(tmp_name, path)
        except BaseException:
            try:
                os.unlink(tmp_name)
            except FileNotFoundError:
                pass
            raise

        if self._sync_mode == SyncMode.FSYNC:
            self._sync_directory(path.parent)

    @staticmethod
    def _sync_directory(directory: Path) -> None:
        """Persist the rename itself (POSIX only)."""
        if not hasattr(os, "O_DIRECTORY"):
            return
        dir_fd = os.open(directory, os.O_RDONLY | os.O_DIRECTORY)
        try:
            os.fsync(dir_fd)
        finally:
            os.close(dir_fd)

    def read(self, destination: str) -> dict[str, Any] | None:
        """Load the snapshot document for destination.

        Returns:
            The decoded document, or None if no snapshot exists.

        Raises:
            MalformedSnapshotError: If the file is not a JSON object.
            OSError: If the file exists but cannot be read.
        """
        path = self.path_for(destination)
        try:
            raw = path.read_bytes()
        except FileNotFoundError:
            return None

        try:
            document = json.loads(raw.decode("utf-8"))
        except (ValueError, RecursionError) as e:
            # UnicodeDecodeError and JSONDecodeError are both ValueErrors
            raise MalformedSnapshotError(f"Cannot decode snapshot {path}: {e}") from e

        if not isinstance(document, dict):
            raise MalformedSnapshotError(f"Snapshot {path} is not a JSON object")
        return document

    def exists(self, destination: str) -> bool:
        return self.path_for(destination).is_file()

    def describe(self, destination: str) -> dict[str, Any]:
        path = self.path_for(destination)
        try:
            stat = path.stat()
        except FileNotFoundError:
            return {"exists": False, "path": str(path)}

        return {
            "exists": True,
            "path": str(path),
            "size": stat.st_size,
            "modified": format_timestamp(datetime.fromtimestamp(stat.st_mtime, tz=timezone.utc)),
        }

    def delete(self, destination: str) -> bool:
        """Remove the snapshot file for destination.

        Returns:
            True if deleted, False if not found
        """
        path = self.path_for(destination)
        if path.exists():
            path.unlink()
            return True
        return False
