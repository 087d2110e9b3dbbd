"""Loading 32-bit little-endian x86 ELF executables from a FAT volume."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import ClassVar

from .fat import FatFile, FatFileSystem

ELF_MAGIC = b"\x7fELF"
MEMORY_LOAD_SIZE = 0x10000

_HEADER = struct.Struct("<4sBBBB8sHHIIIIIHHHHHH")
_PROGRAM_HEADER = struct.Struct("<IIIIIIII")


class ElfError(Exception):
    """The executable is malformed, unsupported or could not be read."""


class ElfBitness(IntEnum):
    BITS_32 = 1
    BITS_64 = 2


class ElfEndianness(IntEnum):
    LITTLE = 1
    BIG = 2


class InstructionSet(IntEnum):
    NONE = 0
    X86 = 3
    ARM = 0x28
    X64 = 0x3E
    ARM64 = 0xB7
    RISCV = 0xF3


class ElfType(IntEnum):
    RELOCATABLE = 1
    EXECUTABLE = 2
    SHARED = 3
    CORE = 4


class ProgramType(IntEnum):
    NULL = 0
    LOAD = 1
    DYNAMIC = 2
    INTERP = 3
    NOTE = 4
    SHLIB = 5
    PHDR = 6
    TLS = 7
    LOOS = 0x60000000
    HIOS = 0x6FFFFFFF
    LOPROC = 0x70000000
    HIPROC = 0x7FFFFFFF


@dataclass(frozen=True)
class ElfHeader:
    """The fixed 52-byte header of a 32-bit ELF file."""

    SIZE: ClassVar[int] = _HEADER.size

    magic: bytes
    bitness: int
    endianness: int
    header_version: int
    abi: int
    type: int
    instruction_set: int
    elf_version: int
    entry: int
    program_header_offset: int
    section_header_offset: int
    flags: int
    header_size: int
    program_header_entry_size: int
    program_header_count: int
    section_header_entry_size: int
    section_header_count: int
    section_names_index: int

    @classmethod
    def parse(cls, data: bytes) -> ElfHeader:
        """Decode the header from its first 52 bytes."""
        if len(data) < _HEADER.size:
            raise ElfError(f"ELF header needs {_HEADER.size} bytes, got {len(data)}")
        magic, bitness, endianness, version, abi, _padding, *rest = _HEADER.unpack_from(bytes(data))
        return cls(magic, bitness, endianness, version, abi, *rest)

    def validate(self) -> None:
        """Raise ElfError unless this is a 32-bit little-endian x86 executable."""
        checks = (
            (self.magic == ELF_MAGIC, "bad magic"),
            (self.bitness == ElfBitness.BITS_32, "not a 32-bit file"),
            (self.endianness == ElfEndianness.LITTLE, "not little endian"),
            (self.header_version == 1, "unsupported header version"),
            (self.elf_version == 1, "unsupported ELF version"),
            (self.type == ElfType.EXECUTABLE, "not an executable"),
            (self.instruction_set == InstructionSet.X86, "not an x86 file"),
        )
        for ok, reason in checks:
            if not ok:
                raise ElfError(f"ELF load error: {reason}")


@dataclass(frozen=True)
class ProgramHeader:
    """One entry of the program header table."""

    SIZE: ClassVar[int] = _PROGRAM_HEADER.size

    type: int
    offset: int
    virtual_address: int
    physical_address: int
    file_size: int
    memory_size: int
    flags: int
    align: int

    @classmethod
    def parse(cls, data: bytes) -> ProgramHeader:
        """Decode an entry from its first 32 bytes."""
        if len(data) < _PROGRAM_HEADER.size:
            raise ElfError(f"program header needs {_PROGRAM_HEADER.size} bytes, got {len(data)}")
        return cls(*_PROGRAM_HEADER.unpack_from(bytes(data)))

    @property
    def is_loadable(self) -> bool:
        return self.type == ProgramType.LOAD


@dataclass(frozen=True)
class LoadedSegment:
    """A loadable segment as it lies in memory, zero-filled to its memory size."""

    virtual_address: int
    data: bytes

    @property
    def end(self) -> int:
        return self.virtual_address + len(self.data)


@dataclass(frozen=True)
class ElfImage:
    """An executable read into memory segments."""

    entry_point: int
    header: ElfHeader
    program_headers: tuple[ProgramHeader, ...]
    segments: tuple[LoadedSegment, ...]


def _read_exact(fs: FatFileSystem, file: FatFile, count: int) -> bytes:
    data = fs.read(file, count)
    if len(data) != count:
        raise ElfError(f"ELF load error: wanted {count} bytes, got {len(data)}")
    return data


def _read_chunked(fs: FatFileSystem, file: FatFile, count: int) -> bytes:
    out = bytearray()
    while count > 0:
        chunk = _read_exact(fs, file, min(count, MEMORY_LOAD_SIZE))
        out += chunk
        count -= len(chunk)
    return bytes(out)


def _skip(fs: FatFileSystem, file: FatFile, count: int) -> None:
    while count > 0:
        count -= len(_read_exact(fs, file, min(count, MEMORY_LOAD_SIZE)))


def _load_segment(fs: FatFileSystem, path: str, header: ProgramHeader) -> LoadedSegment:
    file = fs.open(path)
    try:
        _skip(fs, file, header.offset)
        data = _read_chunked(fs, file, header.file_size)
    finally:
        fs.close(file)
    return LoadedSegment(header.virtual_address, data.ljust(header.memory_size, b"\0"))


def load_elf(fs: FatFileSystem, path: str) -> ElfImage:
    """Read the executable at ``path`` and load each of its LOAD segments."""
    file = fs.open(path)
    try:
        header = ElfHeader.parse(_read_exact(fs, file, ElfHeader.SIZE))
        header.validate()
        entry_size = header.program_header_entry_size
        if entry_size < ProgramHeader.SIZE:
            raise ElfError(f"ELF load error: program header entry size {entry_size} too small")
        if header.program_header_offset < ElfHeader.SIZE:
            raise ElfError("ELF load error: program header table overlaps the header")
        _skip(fs, file, header.program_header_offset - ElfHeader.SIZE)
        table = _read_exact(fs, file, entry_size * header.program_header_count)
    finally:
        fs.close(file)

    program_headers = tuple(
        ProgramHeader.parse(table[offset:offset + entry_size])
        for offset in range(0, len(table), entry_size)
    )
    segments = tuple(
        _load_segment(fs, path, ph) for ph in program_headers if ph.is_loadable
    )
    return ElfImage(header.entry, header, program_headers, segments)