import io
import struct

import pytest

from fatboot.disk import SECTOR_SIZE, DiskImage, Partition
from fatboot.elf import (
    ELF_MAGIC,
    ElfError,
    ElfHeader,
    ProgramHeader,
    ProgramType,
    load_elf,
)
from fatboot.fat import MAX_FILE_HANDLES, FatFileSystem
from fatboot.fatformat import Attribute, DirectoryEntry

TOTAL_SECTORS = 128
ROOT_LBA = 2
DATA_LBA = 3
HEADER_FMT = "<4sBBBB8sHHIIIIIHHHHHH"
ENTRY = 0x100000
PATH = "/boot/kernel.elf"


def set_fat12(fat, cluster, value):
    index = cluster * 3 // 2
    word = int.from_bytes(fat[index:index + 2], "little")
    if cluster % 2 == 0:
        word = (word & 0xF000) | value
    else:
        word = (word & 0x000F) | (value << 4)
    fat[index:index + 2] = word.to_bytes(2, "little")


def dir_entry(name, cluster, size, attributes=Attribute.ARCHIVE):
    return DirectoryEntry(
        name.encode("ascii"), int(attributes), 0, 0, 0, 0, 0,
        cluster >> 16, 0, 0, cluster & 0xFFFF, size,
    ).pack()


def volume_with(kernel):
    image = bytearray(TOTAL_SECTORS * SECTOR_SIZE)
    fat = bytearray(SECTOR_SIZE)
    set_fat12(fat, 0, 0xFF8)
    set_fat12(fat, 1, 0xFFF)
    free = [2]

    def store(data):
        count = max(1, -(-len(data) // SECTOR_SIZE))
        first = free[0]
        for i in range(count):
            cluster = first + i
            start = (DATA_LBA + cluster - 2) * SECTOR_SIZE
            chunk = data[i * SECTOR_SIZE:(i + 1) * SECTOR_SIZE]
            image[start:start + len(chunk)] = chunk
            set_fat12(fat, cluster, cluster + 1 if i < count - 1 else 0xFFF)
        free[0] += count
        return first

    kernel_cluster = store(kernel)
    boot_cluster = store(dir_entry("KERNEL  ELF", kernel_cluster, len(kernel)))
    bpb = struct.pack(
        "<3s8sHBHBHHBHHHII", b"\xeb\x3c\x90", b"FATBOOT ", SECTOR_SIZE, 1, 1, 1, 16,
        TOTAL_SECTORS, 0xF8, 1, 18, 2, 0, 0,
    )
    ebr = struct.pack("<BBBI11s8s", 0, 0, 0x29, 0x12345678, b"NO NAME    ", b"FAT12   ")
    image[:SECTOR_SIZE] = (bpb + ebr).ljust(SECTOR_SIZE, b"\0")
    image[SECTOR_SIZE:2 * SECTOR_SIZE] = fat
    root = dir_entry("BOOT       ", boot_cluster, 0, Attribute.DIRECTORY)
    image[ROOT_LBA * SECTOR_SIZE:ROOT_LBA * SECTOR_SIZE + len(root)] = root
    disk = DiskImage(io.BytesIO(bytes(image)))
    return FatFileSystem(Partition(disk, 0, TOTAL_SECTORS))


def elf_header(phnum, *, magic=ELF_MAGIC, bitness=1, endianness=1, elf_type=2, machine=3, entry=ENTRY):
    return struct.pack(
        HEADER_FMT, magic, bitness, endianness, 1, 0, bytes(8), elf_type, machine, 1,
        entry, 52, 0, 0, 52, 32, phnum, 0, 0, 0,
    )


def make_elf(segments, **header_options):
    """segments: (type, virtual address, payload, memory size) tuples."""
    table_end = 52 + 32 * len(segments)
    cursor = max(table_end, 0x80)
    tables, payloads = [], []
    for kind, vaddr, payload, memsize in segments:
        tables.append(struct.pack("<8I", kind, cursor, vaddr, vaddr, len(payload), memsize, 5, 0x1000))
        payloads.append(payload)
        cursor += len(payload)
    head = elf_header(len(segments), **header_options) + b"".join(tables)
    return head.ljust(max(table_end, 0x80), b"\0") + b"".join(payloads)


SMALL = b"kernel-code-0123"
LARGE = bytes(range(256)) * 4


def test_header_parse_round_trip():
    header = ElfHeader.parse(elf_header(2))
    assert header.magic == ELF_MAGIC
    assert header.entry == ENTRY
    assert header.program_header_offset == 52
    assert header.program_header_count == 2
    assert header.program_header_entry_size == ProgramHeader.SIZE


def test_header_too_short():
    with pytest.raises(ElfError):
        ElfHeader.parse(elf_header(1)[:40])


def test_program_header_parse():
    raw = struct.pack("<8I", int(ProgramType.LOAD), 0x80, 0x200000, 0x200000, 16, 32, 5, 0x1000)
    ph = ProgramHeader.parse(raw)
    assert ph.is_loadable
    assert (ph.offset, ph.virtual_address, ph.file_size, ph.memory_size) == (0x80, 0x200000, 16, 32)


def test_load_single_segment_zero_fills():
    elf = make_elf([(ProgramType.LOAD, ENTRY, SMALL, 64)])
    image = load_elf(volume_with(elf), PATH)
    assert image.entry_point == ENTRY
    assert len(image.segments) == 1
    segment = image.segments[0]
    assert segment.virtual_address == ENTRY
    assert len(segment.data) == 64
    assert segment.data[:len(SMALL)] == SMALL
    assert segment.data[len(SMALL):] == bytes(64 - len(SMALL))


def test_multi_cluster_and_skipped_segments():
    elf = make_elf([
        (ProgramType.NOTE, 0, b"note", 4),
        (ProgramType.LOAD, ENTRY, SMALL, len(SMALL)),
        (ProgramType.LOAD, ENTRY + 0x1000, LARGE, len(LARGE)),
    ])
    assert len(elf) > 2 * SECTOR_SIZE
    image = load_elf(volume_with(elf), "BOOT/KERNEL.ELF")
    assert len(image.program_headers) == 3
    assert [s.virtual_address for s in image.segments] == [ENTRY, ENTRY + 0x1000]
    assert image.segments[0].data == SMALL
    assert image.segments[1].data == LARGE
    assert image.segments[1].end == ENTRY + 0x1000 + len(LARGE)


@pytest.mark.parametrize(
    "options",
    [
        {"magic": b"\x7fBAD"},
        {"bitness": 2},
        {"endianness": 2},
        {"elf_type": 1},
        {"machine": 0x3E},
    ],
)
def test_unsupported_headers_rejected(options):
    elf = make_elf([(ProgramType.LOAD, ENTRY, SMALL, 16)], **options)
    with pytest.raises(ElfError):
        load_elf(volume_with(elf), PATH)


def test_truncated_header():
    with pytest.raises(ElfError):
        load_elf(volume_with(elf_header(1)[:30]), PATH)


def test_truncated_program_table():
    elf = make_elf([(ProgramType.LOAD, ENTRY, SMALL, 16)])
    with pytest.raises(ElfError):
        load_elf(volume_with(elf[:60]), PATH)


def test_truncated_segment_data():
    elf = make_elf([(ProgramType.LOAD, ENTRY, LARGE, len(LARGE))])
    with pytest.raises(ElfError):
        load_elf(volume_with(elf[:-10]), PATH)


def test_missing_file():
    fs = volume_with(make_elf([(ProgramType.LOAD, ENTRY, SMALL, 16)]))
    with pytest.raises(FileNotFoundError):
        load_elf(fs, "/boot/missing.elf")


def test_repeated_loads_release_handles():
    fs = volume_with(make_elf([(ProgramType.LOAD, ENTRY, SMALL, 16)]))
    first = load_elf(fs, PATH)
    for _ in range(MAX_FILE_HANDLES + 2):
        assert load_elf(fs, PATH) == first