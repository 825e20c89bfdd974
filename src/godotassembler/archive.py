"""Archive capability consumed by the packager and importer, plus a ZIP codec."""

from __future__ import annotations

import io
import zipfile
from typing import Protocol, Sequence, runtime_checkable

from .errors import ArchiveEntryError
from .folders import normalise_path

# Entries carry a fixed timestamp so identical projects encode to identical bytes.
_FIXED_TIMESTAMP = (1980, 1, 1, 0, 0, 0)


@runtime_checkable
class Archive(Protocol):
    """Minimal container interface: entries keyed by path holding bytes."""

    def add_entry(self, path: str, data: bytes) -> None:
        """Store ``data`` at ``path``."""

    def list_entries(self) -> Sequence[str]:
        """Return entry paths in insertion order."""

    def read_entry(self, path: str) -> bytes:
        """Return the bytes stored at ``path``.

        Raises:
            ArchiveEntryError: If the entry does not exist.
        """

    def finalize(self) -> bytes:
        """Return the encoded archive."""


class ZipArchive:
    """In-memory :class:`Archive` encoded as a deflated ZIP file.

    Entries are buffered until :meth:`finalize`, which writes them in insertion
    order. Adding the same path twice is rejected so archives never carry
    shadowed entries.
    """

    content_type = "application/zip"

    def __init__(self, *, compression: int = zipfile.ZIP_DEFLATED) -> None:
        self._entries: dict[str, bytes] = {}
        self._compression = compression

    @classmethod
    def from_bytes(cls, content: bytes) -> "ZipArchive":
        """Load every file entry of an encoded ZIP archive.

        Raises:
            ValueError: If ``content`` is not a readable ZIP archive.
        """

        archive = cls()
        try:
            with zipfile.ZipFile(io.BytesIO(content)) as source:
                for info in source.infolist():
                    if info.is_dir():
                        continue
                    archive._entries[info.filename] = source.read(info)
        except zipfile.BadZipFile as exc:
            raise ValueError("Archive content is not a valid ZIP file.") from exc
        return archive

    def add_entry(self, path: str, data: bytes) -> None:
        key = normalise_path(path)
        if not key:
            raise ArchiveEntryError("Archive entry path must not be empty")
        if key in self._entries:
            raise ArchiveEntryError(f"Archive entry '{key}' already exists")
        if isinstance(data, str):
            data = data.encode("utf-8")
        if not isinstance(data, (bytes, bytearray, memoryview)):
            raise TypeError(f"Archive entry '{key}' must be bytes, got {type(data)!r}")
        self._entries[key] = bytes(data)

    def list_entries(self) -> list[str]:
        return list(self._entries)

    def read_entry(self, path: str) -> bytes:
        key = normalise_path(path)
        try:
            return self._entries[key]
        except KeyError as exc:
            raise ArchiveEntryError(f"Archive entry '{key}' does not exist") from exc

    def finalize(self) -> bytes:
        buffer = io.BytesIO()
        with zipfile.ZipFile(buffer, "w", compression=self._compression) as archive:
            for path, data in self._entries.items():
                info = zipfile.ZipInfo(path, date_time=_FIXED_TIMESTAMP)
                info.compress_type = self._compression
                archive.writestr(info, data)
        return buffer.getvalue()

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


__all__ = ["Archive", "ZipArchive"]
