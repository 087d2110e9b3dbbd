"""On-disk structures of the FAT file system: boot sector, directory entries, 8.3 names."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntFlag

from .textutil import to_upper

DIRECTORY_ENTRY_SIZE = 32
LFN_LAST = 0x40
SHORT_NAME_LENGTH = 11

_BPB = struct.Struct("<3s8sHBHBHHBHHHII")
_EBR = struct.Struct("<BBBI11s8s")
_EBR32 = struct.Struct("<IHHIHH12s")
_DIR_ENTRY = struct.Struct("<11sBBBHHHHHHHI")
_BOOT_SECTOR_MIN = _BPB.size + _EBR32.size + _EBR.size


class FatError(Exception):
    """The file system is malformed or an operation on it failed."""


class Attribute(IntFlag):
    """Attribute bits of a directory entry."""

    READ_ONLY = 0x01
    HIDDEN = 0x02
    SYSTEM = 0x04
    VOLUME_ID = 0x08
    DIRECTORY = 0x10
    ARCHIVE = 0x20
    LFN = READ_ONLY | HIDDEN | SYSTEM | VOLUME_ID


@dataclass(frozen=True)
class DirectoryEntry:
    """One 32-byte short-name directory entry."""

    name: bytes
    attributes: int
    reserved: int
    created_time_tenths: int
    created_time: int
    created_date: int
    accessed_date: int
    first_cluster_high: int
    modified_time: int
    modified_date: int
    first_cluster_low: int
    size: int

    @classmethod
    def parse(cls, data: bytes) -> DirectoryEntry:
        """Decode an entry from its first 32 bytes."""
        if len(data) < DIRECTORY_ENTRY_SIZE:
            raise FatError(f"directory entry needs {DIRECTORY_ENTRY_SIZE} bytes, got {len(data)}")
        return cls(*_DIR_ENTRY.unpack_from(bytes(data)))

    def pack(self) -> bytes:
        """Encode the entry back to its 32-byte form."""
        return _DIR_ENTRY.pack(
            self.name,
            self.attributes,
            self.reserved,
            self.created_time_tenths,
            self.created_time,
            self.created_date,
            self.accessed_date,
            self.first_cluster_high,
            self.modified_time,
            self.modified_date,
            self.first_cluster_low,
            self.size,
        )

    @property
    def first_cluster(self) -> int:
        return self.first_cluster_low + (self.first_cluster_high << 16)

    @property
    def is_directory(self) -> bool:
        return bool(self.attributes & Attribute.DIRECTORY)

    @property
    def is_long_name(self) -> bool:
        return self.attributes == Attribute.LFN

    @property
    def short_name(self) -> str:
        """The raw 11-character name field as text."""
        return self.name.decode("latin-1")


@dataclass(frozen=True)
class BootSector:
    """The BIOS parameter block and extended boot record of a FAT volume."""

    jump: bytes
    oem_identifier: bytes
    bytes_per_sector: int
    sectors_per_cluster: int
    reserved_sectors: int
    fat_count: int
    dir_entry_count: int
    total_sectors: int
    media_descriptor_type: int
    sectors_per_fat: int
    sectors_per_track: int
    heads: int
    hidden_sectors: int
    large_sector_count: int
    drive_number: int
    signature: int
    volume_id: int
    volume_label: bytes
    system_id: bytes
    sectors_per_fat_32: int = 0
    fat32_flags: int = 0
    fat_version: int = 0
    root_directory_cluster: int = 0
    fsinfo_sector: int = 0
    backup_boot_sector: int = 0

    @classmethod
    def parse(cls, data: bytes) -> BootSector:
        """Decode the boot sector; FAT32 is recognised by a zero 16-bit FAT size."""
        data = bytes(data)
        if len(data) < _BOOT_SECTOR_MIN:
            raise FatError(f"boot sector needs at least {_BOOT_SECTOR_MIN} bytes, got {len(data)}")
        bpb = _BPB.unpack_from(data)
        fat32: tuple[int, ...] = ()
        if bpb[9] == 0:
            spf32, flags, version, root_cluster, fsinfo, backup, _ = _EBR32.unpack_from(data, _BPB.size)
            fat32 = (spf32, flags, version, root_cluster, fsinfo, backup)
            ebr_offset = _BPB.size + _EBR32.size
        else:
            ebr_offset = _BPB.size
        drive, _reserved, signature, volume_id, label, system_id = _EBR.unpack_from(data, ebr_offset)
        sector = cls(*bpb, drive, signature, volume_id, label, system_id, *fat32)
        if sector.bytes_per_sector == 0 or sector.sectors_per_cluster == 0:
            raise FatError("boot sector declares zero-sized sectors or clusters")
        return sector

    @property
    def is_fat32(self) -> bool:
        return self.sectors_per_fat == 0

    @property
    def total_sector_count(self) -> int:
        return self.total_sectors or self.large_sector_count

    @property
    def fat_size(self) -> int:
        """Sectors in one copy of the allocation table."""
        return self.sectors_per_fat_32 if self.is_fat32 else self.sectors_per_fat

    @property
    def root_directory_size(self) -> int:
        """Bytes in the fixed root directory (zero on FAT32)."""
        return 0 if self.is_fat32 else DIRECTORY_ENTRY_SIZE * self.dir_entry_count

    @property
    def root_directory_sectors(self) -> int:
        return -(-self.root_directory_size // self.bytes_per_sector)

    @property
    def data_section_lba(self) -> int:
        """First sector of the cluster area."""
        tables_end = self.reserved_sectors + self.fat_size * self.fat_count
        return tables_end + self.root_directory_sectors

    def cluster_to_lba(self, cluster: int) -> int:
        """First sector of data cluster ``cluster`` (clusters start at 2)."""
        return self.data_section_lba + (cluster - 2) * self.sectors_per_cluster

    @property
    def root_directory_lba(self) -> int:
        if self.is_fat32:
            return self.cluster_to_lba(self.root_directory_cluster)
        return self.reserved_sectors + self.fat_size * self.fat_count


def short_name(name: str) -> str:
    """Convert a file name to the padded, upper-case 11-character 8.3 form."""
    dot = name.find(".")
    base = name if dot < 0 else name[:dot]
    ext = "" if dot < 0 else name[dot + 1:dot + 4]
    stem = "".join(to_upper(ch) for ch in base[:8])
    suffix = "".join(to_upper(ch) for ch in ext)
    return stem.ljust(8) + suffix.ljust(3)