# fatboot

`fatboot` is a small toolkit for looking inside the kind of disk images a hobby
boot loader works with. It uses only the standard library and needs Python 3.10
or later.

It contains:

- `fatboot.fat` – a read-only FAT12/FAT16/FAT32 driver, `FatFileSystem`, that
  opens files and directories by path, reads them sector by sector along their
  cluster chains and walks directory entries. At most ten files may be open at
  once; the root directory is always available.
- `fatboot.fatformat` – the on-disk structures: `BootSector`, `DirectoryEntry`,
  the `Attribute` flags, `short_name()` for 8.3 names, and `FatError`.
- `fatboot.elf` – `load_elf()`, which checks that a file is a 32-bit
  little-endian x86 executable and reads its LOAD segments (zero-filled to their
  memory size) into an `ElfImage`; problems raise `ElfError`.
- `fatboot.disk` – `DiskImage` for whole-sector reads from an image file,
  `lba_to_chs()`, `MBREntry` for partition table entries, `Partition` and
  `detect_partition()`.
- `fatboot.textformat` – a minimal printf (`format_text`, `format_number`,
  `format_buffer`) and the `CharacterDevice`, `MemoryDevice` and `TextDevice`
  classes.
- `fatboot.textutil` – ASCII case helpers, UTF-16 to code point and code point
  to UTF-8 conversion, and real-mode `segoffset_to_linear()`.
- `fatboot.screen` – an emulated 80x25 text screen, `TextScreen`, and a
  write-only `DebugPort`.
- `fatboot.console` – `Console` with fixed descriptors (stdin, stdout, stderr,
  debug) routed by `VirtualFileSystem`, and coloured log lines by `LogLevel`.
- `fatboot.descriptors` – encoders for x86 GDT entries and IDT gates,
  `InterruptTable`, and `exception_name()` for CPU exception vectors.
- `fatboot.boot` – `MemoryRegion`, `BootParams`, `detect_memory()` and
  `report_boot()`.

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Command line

```
fatboot IMAGE PATH
```

opens the FAT image `IMAGE` and looks up `PATH` (for example `/boot/kernel.elf`
or `/`). For a directory it prints the 11-character short names of up to ten
entries. For a file it reads the whole file through without printing it, so it
serves as a check that the file and its cluster chain can be read. The exit
status is 0 on success and 1 on a usage error, an unreadable image, a bad file
system or a path that is not found.

## Library use

Reading a file from an image:

```python
from fatboot.disk import DiskImage
from fatboot.fat import FatFileSystem

with DiskImage.from_file("disk.img") as disk:
    fs = FatFileSystem(disk)
    handle = fs.open("/boot/kernel.elf")
    data = fs.read(handle, handle.size)
    fs.close(handle)
```

Listing a directory:

```python
root = fs.open("/")
for entry in fs.iter_directory(root):
    print(entry.short_name, entry.size, entry.is_directory)
fs.close(root)
```

A missing path raises `FileNotFoundError`; a path that goes through a file as if
it were a directory raises `NotADirectoryError`.

Loading an ELF executable:

```python
from fatboot.elf import load_elf

image = load_elf(fs, "/boot/kernel.elf")
print(hex(image.entry_point))
for segment in image.segments:
    print(hex(segment.virtual_address), len(segment.data))
```

Formatting text the way the boot console does (`%d %i %u %x %X %p %o %c %s %%`,
with `h`, `hh`, `l`, `ll` length prefixes; unknown conversions are dropped):

```python
from fatboot.textformat import format_text, format_buffer

format_text("MEM: start=0x%llx length=0x%llx", 0x100000, 0x7EE0000)
# 'MEM: start=0x100000 length=0x7ee0000'
format_buffer("boot: ", b"\x55\xaa")   # 'boot: 55aa\n'
```

Emulating the text screen:

```python
from fatboot.screen import TextScreen

screen = TextScreen()
screen.write(b"Hello\nworld")
screen.lines()[:2]   # ['Hello', 'world']
```

Building FAT short names:

```python
from fatboot.fatformat import short_name

short_name("kernel.elf")   # 'KERNEL  ELF'
```

## What it does not do

- The FAT driver is read-only: it cannot create, write, rename or delete files.
- Long file names are not assembled; lookups match 8.3 short names only, and
  long-name entries appear in directory listings as raw entries.
- Nothing is booted or executed: `load_elf()` returns the segments as bytes, and
  the screen, debug port and descriptor tables are in-memory models, not real
  hardware.