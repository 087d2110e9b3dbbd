"""Global and interrupt descriptor tables of the 32-bit protected-mode kernel."""

from __future__ import annotations

import operator
import struct
from dataclasses import dataclass, replace
from enum import IntEnum

GDT_CODE_SEGMENT = 0x08
GDT_DATA_SEGMENT = 0x10
IDT_SIZE = 256

_GDT_ENTRY = struct.Struct("<HHBBBB")
_IDT_ENTRY = struct.Struct("<HHBBH")


class GdtAccess(IntEnum):
    """Bits of the access byte of a segment descriptor."""

    CODE_READABLE = 0x02
    DATA_WRITEABLE = 0x02
    CODE_CONFORMING = 0x04
    DATA_DIRECTION_NORMAL = 0x00
    DATA_DIRECTION_DOWN = 0x04
    DATA_SEGMENT = 0x10
    CODE_SEGMENT = 0x18
    DESCRIPTOR_TSS = 0x00
    RING0 = 0x00
    RING1 = 0x20
    RING2 = 0x40
    RING3 = 0x60
    PRESENT = 0x80


class GdtFlags(IntEnum):
    """Bits of the flags nibble of a segment descriptor."""

    BITS_64 = 0x20
    BITS_32 = 0x40
    BITS_16 = 0x00
    GRANULARITY_1B = 0x00
    GRANULARITY_4K = 0x80


class IdtFlags(IntEnum):
    """Type and attribute bits of an interrupt gate."""

    GATE_TASK = 0x5
    GATE_16BIT_INT = 0x6
    GATE_16BIT_TRAP = 0x7
    GATE_32BIT_INT = 0xE
    GATE_32BIT_TRAP = 0xF
    RING0 = 0 << 5
    RING1 = 1 << 5
    RING2 = 2 << 5
    RING3 = 3 << 5
    PRESENT = 0x80


def encode_gdt_entry(base: int, limit: int, access: int, flags: int) -> bytes:
    """Pack one 8-byte segment descriptor."""
    base = operator.index(base) & 0xFFFFFFFF
    limit = operator.index(limit)
    return _GDT_ENTRY.pack(
        limit & 0xFFFF,
        base & 0xFFFF,
        (base >> 16) & 0xFF,
        operator.index(access) & 0xFF,
        ((limit >> 16) & 0xF) | (operator.index(flags) & 0xF0),
        (base >> 24) & 0xFF,
    )


def default_gdt() -> bytes:
    """The kernel's table: null descriptor, flat 32-bit code and data segments."""
    granular_32 = GdtFlags.BITS_32 | GdtFlags.GRANULARITY_4K
    return b"".join((
        encode_gdt_entry(0, 0, 0, 0),
        encode_gdt_entry(
            0,
            0xFFFFF,
            GdtAccess.PRESENT | GdtAccess.RING0 | GdtAccess.CODE_SEGMENT | GdtAccess.CODE_READABLE,
            granular_32,
        ),
        encode_gdt_entry(
            0,
            0xFFFFF,
            GdtAccess.PRESENT | GdtAccess.RING0 | GdtAccess.DATA_SEGMENT | GdtAccess.DATA_WRITEABLE,
            granular_32,
        ),
    ))


def encode_idt_gate(base: int, selector: int, flags: int) -> bytes:
    """Pack one 8-byte interrupt gate."""
    base = operator.index(base) & 0xFFFFFFFF
    return _IDT_ENTRY.pack(
        base & 0xFFFF,
        operator.index(selector) & 0xFFFF,
        0,
        operator.index(flags) & 0xFF,
        (base >> 16) & 0xFFFF,
    )


@dataclass(frozen=True)
class IdtGate:
    """The contents of one interrupt descriptor table slot."""

    base: int = 0
    selector: int = 0
    flags: int = 0

    @property
    def present(self) -> bool:
        return bool(self.flags & IdtFlags.PRESENT)

    def encode(self) -> bytes:
        return encode_idt_gate(self.base, self.selector, self.flags)


class InterruptTable:
    """A 256-entry interrupt descriptor table."""

    def __init__(self) -> None:
        self._gates = [IdtGate()] * IDT_SIZE

    def __len__(self) -> int:
        return len(self._gates)

    @property
    def limit(self) -> int:
        """The descriptor limit: table size in bytes minus one."""
        return len(self._gates) * _IDT_ENTRY.size - 1

    def _index(self, interrupt: int) -> int:
        interrupt = operator.index(interrupt)
        if not 0 <= interrupt < IDT_SIZE:
            raise IndexError(f"interrupt {interrupt} outside 0..{IDT_SIZE - 1}")
        return interrupt

    def set_gate(self, interrupt: int, base: int, selector: int, flags: int) -> None:
        """Point ``interrupt`` at ``base`` in segment ``selector``."""
        self._gates[self._index(interrupt)] = IdtGate(
            operator.index(base) & 0xFFFFFFFF,
            operator.index(selector) & 0xFFFF,
            operator.index(flags) & 0xFF,
        )

    def enable_gate(self, interrupt: int) -> None:
        """Set the present bit of a gate."""
        index = self._index(interrupt)
        gate = self._gates[index]
        self._gates[index] = replace(gate, flags=gate.flags | IdtFlags.PRESENT)

    def disable_gate(self, interrupt: int) -> None:
        """Clear the present bit of a gate."""
        index = self._index(interrupt)
        gate = self._gates[index]
        self._gates[index] = replace(gate, flags=gate.flags & ~IdtFlags.PRESENT & 0xFF)

    def entry(self, interrupt: int) -> IdtGate:
        """The gate stored for ``interrupt``."""
        return self._gates[self._index(interrupt)]

    def encode(self) -> bytes:
        """The whole table in its in-memory layout."""
        return b"".join(gate.encode() for gate in self._gates)


_EXCEPTIONS = (
    "Divide by zero error",
    "Debug",
    "Non-maskable Interrupt",
    "Breakpoint",
    "Overflow",
    "Bound Range Exceeded",
    "Invalid Opcode",
    "Device Not Available",
    "Double Fault",
    "Coprocessor Segment Overrun",
    "Invalid TSS",
    "Segment Not Present",
    "Stack-Segment Fault",
    "General Protection Fault",
    "Page Fault",
    "",
    "x87 Floating-Point Exception",
    "Alignment Check",
    "Machine Check",
    "SIMD Floating-Point Exception",
    "Virtualization Exception",
    "Control Protection Exception ",
    "",
    "",
    "",
    "",
    "",
    "",
    "Hypervisor Injection Exception",
    "VMM Communication Exception",
    "Security Exception",
    "",
)


def exception_name(interrupt: int) -> str:
    """Name of a CPU exception (0-31); reserved vectors have an empty name."""
    interrupt = operator.index(interrupt)
    if not 0 <= interrupt < len(_EXCEPTIONS):
        raise ValueError(f"{interrupt} is not a CPU exception vector")
    return _EXCEPTIONS[interrupt]