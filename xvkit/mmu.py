"""x86 MMU definitions: address arithmetic, segment and gate descriptors, trap frames."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from typing import ClassVar

# Eflags register.
FL_IF = 0x00000200

# Control register flags.
CR0_PE = 0x00000001
CR0_WP = 0x00010000
CR0_PG = 0x80000000
CR4_PSE = 0x00000010

# Segment selectors.
SEG_KCODE = 1
SEG_KDATA = 2
SEG_UCODE = 3
SEG_UDATA = 4
SEG_TSS = 5
NSEGS = 6

DPL_USER = 0x3

# Application segment type bits.
STA_X = 0x8
STA_W = 0x2
STA_R = 0x2

# System segment type bits.
STS_T32A = 0x9
STS_IG32 = 0xE
STS_TG32 = 0xF

# Paging.
NPDENTRIES = 1024
NPTENTRIES = 1024
PGSIZE = 4096
PTXSHIFT = 12
PDXSHIFT = 22

PTE_P = 0x001
PTE_W = 0x002
PTE_U = 0x004
PTE_PS = 0x080

_WORD_MASK = 0xFFFFFFFF


def pdx(va: int) -> int:
    """Page directory index of a virtual address."""
    return ((va & _WORD_MASK) >> PDXSHIFT) & 0x3FF


def ptx(va: int) -> int:
    """Page table index of a virtual address."""
    return ((va & _WORD_MASK) >> PTXSHIFT) & 0x3FF


def pgaddr(d: int, t: int, o: int) -> int:
    """Build a virtual address from directory index, table index and offset."""
    return ((d << PDXSHIFT) | (t << PTXSHIFT) | o) & _WORD_MASK


def pg_round_up(size: int) -> int:
    """Round up to a page boundary."""
    return (size + PGSIZE - 1) & ~(PGSIZE - 1) & _WORD_MASK


def pg_round_down(addr: int) -> int:
    """Round down to a page boundary."""
    return addr & ~(PGSIZE - 1) & _WORD_MASK


def pte_addr(pte: int) -> int:
    """Physical address held in a page table entry."""
    return pte & ~0xFFF & _WORD_MASK


def pte_flags(pte: int) -> int:
    """Flag bits of a page table entry."""
    return pte & 0xFFF


def _pack_bits(obj: object, layout: tuple[tuple[str, int], ...]) -> bytes:
    value = 0
    shift = 0
    for name, width in layout:
        field = getattr(obj, name)
        if not 0 <= field < (1 << width):
            raise ValueError(f"{name}={field} does not fit in {width} bits")
        value |= field << shift
        shift += width
    return value.to_bytes(shift // 8, "little")


def _unpack_bits(data: bytes, layout: tuple[tuple[str, int], ...]) -> dict[str, int]:
    nbytes = sum(width for _, width in layout) // 8
    if len(data) != nbytes:
        raise ValueError(f"descriptor needs {nbytes} bytes, got {len(data)}")
    value = int.from_bytes(data, "little")
    fields = {}
    for name, width in layout:
        fields[name] = value & ((1 << width) - 1)
        value >>= width
    return fields


_SEG_LAYOUT = (
    ("lim_15_0", 16),
    ("base_15_0", 16),
    ("base_23_16", 8),
    ("type", 4),
    ("s", 1),
    ("dpl", 2),
    ("p", 1),
    ("lim_19_16", 4),
    ("avl", 1),
    ("rsv1", 1),
    ("db", 1),
    ("g", 1),
    ("base_31_24", 8),
)


@dataclass
class SegmentDescriptor:
    """An 8-byte GDT segment descriptor."""

    lim_15_0: int = 0
    base_15_0: int = 0
    base_23_16: int = 0
    type: int = 0
    s: int = 0
    dpl: int = 0
    p: int = 0
    lim_19_16: int = 0
    avl: int = 0
    rsv1: int = 0
    db: int = 0
    g: int = 0
    base_31_24: int = 0

    SIZE: ClassVar[int] = 8

    @classmethod
    def segment(cls, type_: int, base: int, limit: int, dpl: int) -> "SegmentDescriptor":
        """A normal 32-bit segment whose limit is in 4096-byte units."""
        base &= _WORD_MASK
        limit &= _WORD_MASK
        return cls(
            lim_15_0=(limit >> 12) & 0xFFFF,
            base_15_0=base & 0xFFFF,
            base_23_16=(base >> 16) & 0xFF,
            type=type_,
            s=1,
            dpl=dpl,
            p=1,
            lim_19_16=(limit >> 28) & 0xF,
            avl=0,
            rsv1=0,
            db=1,
            g=1,
            base_31_24=base >> 24,
        )

    @classmethod
    def segment16(cls, type_: int, base: int, limit: int, dpl: int) -> "SegmentDescriptor":
        """A segment whose limit is in bytes."""
        base &= _WORD_MASK
        limit &= _WORD_MASK
        return cls(
            lim_15_0=limit & 0xFFFF,
            base_15_0=base & 0xFFFF,
            base_23_16=(base >> 16) & 0xFF,
            type=type_,
            s=1,
            dpl=dpl,
            p=1,
            lim_19_16=(limit >> 16) & 0xF,
            avl=0,
            rsv1=0,
            db=1,
            g=0,
            base_31_24=base >> 24,
        )

    def pack(self) -> bytes:
        """Encode as the processor expects it in the GDT."""
        return _pack_bits(self, _SEG_LAYOUT)

    @classmethod
    def unpack(cls, data: bytes) -> "SegmentDescriptor":
        """Decode an 8-byte descriptor."""
        return cls(**_unpack_bits(bytes(data), _SEG_LAYOUT))


_GATE_LAYOUT = (
    ("off_15_0", 16),
    ("cs", 16),
    ("args", 5),
    ("rsv1", 3),
    ("type", 4),
    ("s", 1),
    ("dpl", 2),
    ("p", 1),
    ("off_31_16", 16),
)


@dataclass
class GateDescriptor:
    """An 8-byte IDT interrupt or trap gate."""

    off_15_0: int = 0
    cs: int = 0
    args: int = 0
    rsv1: int = 0
    type: int = 0
    s: int = 0
    dpl: int = 0
    p: int = 0
    off_31_16: int = 0

    SIZE: ClassVar[int] = 8

    @classmethod
    def gate(cls, istrap: bool, selector: int, offset: int, dpl: int) -> "GateDescriptor":
        """A trap gate if istrap, otherwise an interrupt gate (which clears FL_IF)."""
        offset &= _WORD_MASK
        return cls(
            off_15_0=offset & 0xFFFF,
            cs=selector,
            args=0,
            rsv1=0,
            type=STS_TG32 if istrap else STS_IG32,
            s=0,
            dpl=dpl,
            p=1,
            off_31_16=offset >> 16,
        )

    def pack(self) -> bytes:
        """Encode as the processor expects it in the IDT."""
        return _pack_bits(self, _GATE_LAYOUT)

    @classmethod
    def unpack(cls, data: bytes) -> "GateDescriptor":
        """Decode an 8-byte gate."""
        return cls(**_unpack_bits(bytes(data), _GATE_LAYOUT))


@dataclass
class TrapFrame:
    """Registers saved on the kernel stack when a trap is taken."""

    edi: int = 0
    esi: int = 0
    ebp: int = 0
    oesp: int = 0
    ebx: int = 0
    edx: int = 0
    ecx: int = 0
    eax: int = 0
    gs: int = 0
    fs: int = 0
    es: int = 0
    ds: int = 0
    trapno: int = 0
    err: int = 0
    eip: int = 0
    cs: int = 0
    eflags: int = 0
    esp: int = 0
    ss: int = 0

    _FORMAT: ClassVar[struct.Struct] = struct.Struct("<8IHxxHxxHxxHxx3IHxx2IHxx")
    SIZE: ClassVar[int] = _FORMAT.size

    def pack(self) -> bytes:
        """Encode in stack layout, padding as zeros."""
        try:
            return self._FORMAT.pack(
                self.edi, self.esi, self.ebp, self.oesp,
                self.ebx, self.edx, self.ecx, self.eax,
                self.gs, self.fs, self.es, self.ds,
                self.trapno, self.err, self.eip,
                self.cs, self.eflags, self.esp, self.ss,
            )
        except struct.error as exc:
            raise ValueError(f"trap frame field out of range: {exc}") from exc

    @classmethod
    def unpack(cls, data: bytes) -> "TrapFrame":
        """Decode from stack layout; padding is ignored."""
        if len(data) < cls.SIZE:
            raise ValueError(f"trap frame needs {cls.SIZE} bytes, got {len(data)}")
        return cls(*cls._FORMAT.unpack_from(data))