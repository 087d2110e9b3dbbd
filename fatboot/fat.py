"""Read-only FAT12/16/32 driver: path lookup, cluster chains and file reads."""

from __future__ import annotations

import errno
from dataclasses import dataclass, field
from typing import Iterator, Optional, Protocol

from .fatformat import (
    DIRECTORY_ENTRY_SIZE,
    BootSector,
    DirectoryEntry,
    FatError,
    short_name,
)

SECTOR_SIZE = 512
MAX_FILE_HANDLES = 10
ROOT_DIRECTORY_HANDLE = -1
FAT_CACHE_SIZE = 5
END_OF_CHAIN = 0xFFFFFFF8


class SectorReader(Protocol):
    """Anything that reads whole sectors, such as a partition."""

    def read_sectors(self, lba: int, count: int) -> bytes: ...


@dataclass(eq=False)
class FatFile:
    """An open file or directory and its read position."""

    handle: int
    is_directory: bool
    size: int
    position: int = 0
    first_cluster: int = 0
    current_cluster: int = 0
    sector_in_cluster: int = 0
    buffer: bytes = field(default=b"", repr=False)
    opened: bool = True

    @property
    def is_root(self) -> bool:
        return self.handle == ROOT_DIRECTORY_HANDLE


class FatFileSystem:
    """A mounted FAT volume read through ``partition``.

    The root directory of FAT12/16 is read as a run of consecutive sectors;
    everything else follows its cluster chain through the allocation table.
    """

    def __init__(self, partition: SectorReader) -> None:
        self.partition = partition
        try:
            boot = partition.read_sectors(0, 1)
        except (OSError, ValueError) as exc:
            raise FatError("read boot sector failed") from exc
        self.boot_sector = BootSector.parse(boot)
        bs = self.boot_sector

        root_lba = bs.root_directory_lba
        self.root = FatFile(
            handle=ROOT_DIRECTORY_HANDLE,
            is_directory=True,
            size=DIRECTORY_ENTRY_SIZE * bs.dir_entry_count,
            first_cluster=root_lba,
            current_cluster=root_lba,
        )
        self.root.buffer = self._read_sector(root_lba, "read root directory failed")

        data_clusters = (bs.total_sector_count - bs.data_section_lba) // bs.sectors_per_cluster
        if data_clusters < 0xFF5:
            self.fat_type = 12
        elif bs.sectors_per_fat != 0:
            self.fat_type = 16
        else:
            self.fat_type = 32

        self._files: list[Optional[FatFile]] = [None] * MAX_FILE_HANDLES
        self._fat_cache = b""
        self._fat_cache_start: Optional[int] = None

    @property
    def data_section_lba(self) -> int:
        """First sector of the cluster area."""
        return self.boot_sector.data_section_lba

    def _read_sector(self, lba: int, message: str) -> bytes:
        try:
            return self.partition.read_sectors(lba, 1)[:SECTOR_SIZE]
        except (OSError, ValueError) as exc:
            raise FatError(f"{message} (lba={lba})") from exc

    def cluster_to_lba(self, cluster: int) -> int:
        """First sector of data cluster ``cluster``."""
        return self.boot_sector.cluster_to_lba(cluster)

    def _fat_bytes(self, index: int, width: int) -> int:
        sector = index // SECTOR_SIZE
        start = self._fat_cache_start
        if (
            start is None
            or index < start * SECTOR_SIZE
            or index + width > (start + FAT_CACHE_SIZE) * SECTOR_SIZE
        ):
            lba = self.boot_sector.reserved_sectors + sector
            try:
                self._fat_cache = self.partition.read_sectors(lba, FAT_CACHE_SIZE)
            except (OSError, ValueError) as exc:
                raise FatError(f"read allocation table failed (lba={lba})") from exc
            self._fat_cache_start = start = sector
        offset = index - start * SECTOR_SIZE
        return int.from_bytes(self._fat_cache[offset:offset + width], "little")

    def next_cluster(self, cluster: int) -> int:
        """The cluster after ``cluster``; end-of-chain markers are >= END_OF_CHAIN."""
        if self.fat_type == 12:
            raw = self._fat_bytes(cluster * 3 // 2, 2)
            value = raw & 0x0FFF if cluster % 2 == 0 else raw >> 4
            if value >= 0xFF8:
                value |= 0xFFFFF000
        elif self.fat_type == 16:
            value = self._fat_bytes(cluster * 2, 2)
            if value >= 0xFFF8:
                value |= 0xFFFF0000
        else:
            value = self._fat_bytes(cluster * 4, 4) & 0x0FFFFFFF
            if value >= 0x0FFFFFF8:
                value |= 0xF0000000
        return value

    def _open_entry(self, entry: DirectoryEntry) -> FatFile:
        try:
            handle = self._files.index(None)
        except ValueError:
            raise FatError("out of file handles") from None
        first = entry.first_cluster
        file = FatFile(
            handle=handle,
            is_directory=entry.is_directory,
            size=entry.size,
            first_cluster=first,
            current_cluster=first,
        )
        file.buffer = self._read_sector(
            self.cluster_to_lba(first),
            f"open entry {entry.short_name!r} failed - read error cluster={first}",
        )
        self._files[handle] = file
        return file

    def _find(self, directory: FatFile, name: str) -> Optional[DirectoryEntry]:
        target = short_name(name)
        for entry in self.iter_directory(directory):
            if entry.short_name == target:
                return entry
        return None

    def open(self, path: str) -> FatFile:
        """Open the file or directory at ``path``; "/" is the root directory."""
        remaining = path[1:] if path.startswith("/") else path
        current = self.root
        while remaining:
            name, sep, remaining = remaining.partition("/")
            is_last = not sep
            entry = self._find(current, name)
            self.close(current)
            if entry is None:
                raise FileNotFoundError(errno.ENOENT, "not found", name)
            if not is_last and not entry.is_directory:
                raise NotADirectoryError(errno.ENOTDIR, "not a directory", name)
            current = self._open_entry(entry)
        return current

    def _advance(self, file: FatFile) -> bool:
        """Load the next sector of ``file``; False when there is none."""
        if file.is_root:
            file.current_cluster += 1
            lba = file.current_cluster
        else:
            file.sector_in_cluster += 1
            if file.sector_in_cluster >= self.boot_sector.sectors_per_cluster:
                file.sector_in_cluster = 0
                file.current_cluster = self.next_cluster(file.current_cluster)
            if file.current_cluster >= END_OF_CHAIN:
                file.size = file.position
                return False
            lba = self.cluster_to_lba(file.current_cluster) + file.sector_in_cluster
        try:
            file.buffer = self.partition.read_sectors(lba, 1)[:SECTOR_SIZE]
        except (OSError, ValueError):
            return False
        return True

    def read(self, file: FatFile, count: int) -> bytes:
        """Read up to ``count`` bytes from the current position of ``file``."""
        if not file.opened:
            raise FatError("file is closed")
        if count < 0:
            raise ValueError(f"negative byte count {count}")
        if not file.is_directory or file.size != 0:
            count = min(count, max(file.size - file.position, 0))
        out = bytearray()
        while count > 0:
            offset = file.position % SECTOR_SIZE
            left = SECTOR_SIZE - offset
            take = min(count, left)
            out += file.buffer[offset:offset + take]
            file.position += take
            count -= take
            if take == left and not self._advance(file):
                break
        return bytes(out)

    def read_entry(self, file: FatFile) -> Optional[DirectoryEntry]:
        """Read the next directory entry, or None when no whole entry is left."""
        data = self.read(file, DIRECTORY_ENTRY_SIZE)
        if len(data) != DIRECTORY_ENTRY_SIZE:
            return None
        return DirectoryEntry.parse(data)

    def iter_directory(self, file: FatFile) -> Iterator[DirectoryEntry]:
        """Yield entries of a directory up to its end marker."""
        while (entry := self.read_entry(file)) is not None:
            if entry.name[:1] == b"\0":
                return
            yield entry

    def close(self, file: FatFile) -> None:
        """Release ``file``; the root directory is rewound instead."""
        if file.is_root:
            file.position = 0
            file.current_cluster = file.first_cluster
            file.sector_in_cluster = 0
            file.buffer = self._read_sector(file.first_cluster, "read root directory failed")
            return
        if 0 <= file.handle < MAX_FILE_HANDLES and self._files[file.handle] is file:
            self._files[file.handle] = None
        file.opened = False