"""Sector-level access to disk images, CHS geometry and MBR partitions."""

from __future__ import annotations

import operator
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, NamedTuple

SECTOR_SIZE = 512
_MBR_ENTRY = struct.Struct("<B3sB3sII")


class DiskError(OSError):
    """A sector could not be read."""


class CHS(NamedTuple):
    """A cylinder/head/sector address; sectors count from 1."""

    cylinder: int
    head: int
    sector: int


@dataclass(frozen=True)
class DiskGeometry:
    """Drive geometry as reported by the firmware."""

    cylinders: int
    heads: int
    sectors: int


def lba_to_chs(lba: int, sectors_per_track: int, heads: int) -> CHS:
    """Convert a logical block address to a CHS address."""
    lba = operator.index(lba)
    if lba < 0:
        raise ValueError(f"negative LBA {lba}")
    if sectors_per_track <= 0 or heads <= 0:
        raise ValueError("sectors per track and heads must be positive")
    track, sector_index = divmod(lba, sectors_per_track)
    cylinder, head = divmod(track, heads)
    return CHS(cylinder, head, sector_index + 1)


class DiskImage:
    """A disk image read in whole sectors."""

    def __init__(self, stream: BinaryIO) -> None:
        self.stream = stream

    @classmethod
    def from_file(cls, path: str | Path) -> DiskImage:
        """Open the image at ``path`` for reading."""
        return cls(open(path, "rb"))

    def read_sectors(self, lba: int, count: int) -> bytes:
        """Read ``count`` sectors starting at ``lba``.

        At least one whole sector must be available; a short final read is
        padded with zero bytes to the full length.
        """
        if lba < 0:
            raise ValueError(f"negative LBA {lba}")
        if count < 1:
            raise ValueError(f"sector count must be at least 1, got {count}")
        self.stream.seek(lba * SECTOR_SIZE)
        data = self.stream.read(count * SECTOR_SIZE)
        if len(data) < SECTOR_SIZE:
            raise DiskError(f"cannot read {count} sector(s) at LBA {lba}")
        return data.ljust(count * SECTOR_SIZE, b"\0")

    def close(self) -> None:
        """Close the underlying file."""
        self.stream.close()

    def __enter__(self) -> DiskImage:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


@dataclass(frozen=True)
class MBREntry:
    """One 16-byte partition table entry of a master boot record."""

    attributes: int
    chs_start: bytes
    partition_type: int
    chs_end: bytes
    lba_start: int
    size: int

    @property
    def bootable(self) -> bool:
        return bool(self.attributes & 0x80)

    @classmethod
    def parse(cls, data: bytes) -> MBREntry:
        """Decode an entry from its first 16 bytes."""
        if len(data) < _MBR_ENTRY.size:
            raise ValueError(f"MBR entry needs {_MBR_ENTRY.size} bytes, got {len(data)}")
        return cls(*_MBR_ENTRY.unpack_from(bytes(data)))


@dataclass
class Partition:
    """A window of a disk starting at ``offset`` sectors."""

    disk: DiskImage
    offset: int
    size: int

    def read_sectors(self, lba: int, count: int) -> bytes:
        """Read sectors relative to the start of the partition."""
        return self.disk.read_sectors(lba + self.offset, count)


def detect_partition(
    disk: DiskImage,
    drive_number: int,
    geometry: DiskGeometry,
    entry: MBREntry | None = None,
) -> Partition:
    """Floppies (drive < 0x80) span the whole disk; hard disks use the MBR entry."""
    if drive_number < 0x80:
        size = geometry.cylinders * geometry.heads * geometry.sectors
        return Partition(disk, 0, size)
    if entry is None:
        raise ValueError("a partition entry is required for a hard disk")
    return Partition(disk, entry.lba_start, entry.size)