"""Read FAT disk images, load ELF executables and emulate a boot-time text console."""

__version__ = "0.1.0"