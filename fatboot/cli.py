"""Command that lists a directory or reads a file inside a FAT disk image."""

from __future__ import annotations

import sys
from itertools import islice

from .disk import DiskImage
from .fat import FatFileSystem
from .fatformat import FatError

MAX_LISTED_ENTRIES = 10
_CHUNK_SIZE = 100


def main(argv: list[str] | None = None) -> int:
    """Run the command; returns the process exit status."""
    args = sys.argv[1:] if argv is None else list(argv)
    if len(args) < 2:
        sys.stderr.write("Syntax: fatboot <image> <file_path>\n")
        return 1
    image, path = args[0], args[1]

    try:
        disk = DiskImage.from_file(image)
    except OSError:
        print("Disk init error")
        return 1

    with disk:
        try:
            fs = FatFileSystem(disk)
        except FatError:
            print("FAT init error")
            return 1

        try:
            fd = fs.open(path)
        except (FileNotFoundError, NotADirectoryError) as exc:
            print(f"FAT: {exc.filename} {exc.strerror}")
            return 1
        except FatError as exc:
            print(f"FAT: {exc}")
            return 1

        try:
            if fd.is_directory:
                for entry in islice(fs.iter_directory(fd), MAX_LISTED_ENTRIES):
                    sys.stdout.write(f"  {entry.short_name}\r\n")
            else:
                # the file is read through, which walks its whole cluster chain
                while fs.read(fd, _CHUNK_SIZE):
                    pass
        finally:
            fs.close(fd)
    return 0


if __name__ == "__main__":
    sys.exit(main())