"""Boot parameters handed from the boot loader to the kernel, and their reporting."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Iterable

from .console import Console, LogLevel

MAX_REGIONS = 256
MODULE = "Main"


class E820Type(IntEnum):
    """Kinds of memory region reported by the firmware memory map."""

    USABLE = 1
    RESERVED = 2
    ACPI_RECLAIMABLE = 3
    ACPI_NVS = 4
    BAD_MEMORY = 5


@dataclass(frozen=True)
class MemoryRegion:
    """One block of the physical memory map."""

    begin: int
    length: int
    type: int
    acpi: int = 0

    @property
    def end(self) -> int:
        """First address past the region."""
        return self.begin + self.length

    @property
    def usable(self) -> bool:
        return self.type == E820Type.USABLE


@dataclass(frozen=True)
class BootParams:
    """What the boot loader passes to the kernel entry point."""

    boot_device: int
    memory: tuple[MemoryRegion, ...] = field(default_factory=tuple)

    @property
    def region_count(self) -> int:
        return len(self.memory)


def detect_memory(
    blocks: Iterable[MemoryRegion], console: Console | None = None
) -> tuple[MemoryRegion, ...]:
    """Collect the firmware memory map, echoing each block to ``console``.

    At most MAX_REGIONS blocks are accepted; more raise ValueError.
    """
    regions: list[MemoryRegion] = []
    for block in blocks:
        if len(regions) >= MAX_REGIONS:
            raise ValueError(f"memory map has more than {MAX_REGIONS} regions")
        regions.append(block)
        if console is not None:
            console.printf(
                "E820: base=0x%llx length=0x%llx type=0x%x\n",
                block.begin,
                block.length,
                block.type,
            )
    return tuple(regions)


def report_boot(console: Console, params: BootParams) -> None:
    """Log the boot parameters and print the kernel banner, as the kernel does on start."""
    console.log(MODULE, LogLevel.DEBUG, "Boot device: %x", params.boot_device)
    console.log(MODULE, LogLevel.DEBUG, "Memory region count: %d", params.region_count)
    for region in params.memory:
        console.log(
            MODULE,
            LogLevel.DEBUG,
            "MEM: start=0x%llx length=0x%llx type=%x",
            region.begin,
            region.length,
            region.type,
        )

    console.log(MODULE, LogLevel.INFO, "This is an info msg!")
    console.log(MODULE, LogLevel.WARN, "This is a warning msg!")
    console.log(MODULE, LogLevel.ERROR, "This is an error msg!")
    console.log(MODULE, LogLevel.CRITICAL, "This is a critical msg!")
    console.printf("Nanobyte OS v0.1\n")
    console.printf("This operating system is under construction.\n")