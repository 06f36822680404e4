import pytest

from xvkit.mmu import (
    DPL_USER,
    PGSIZE,
    PTE_P,
    PTE_U,
    PTE_W,
    SEG_KCODE,
    STA_R,
    STA_W,
    STA_X,
    STS_IG32,
    STS_T32A,
    STS_TG32,
    GateDescriptor,
    SegmentDescriptor,
    TrapFrame,
    pdx,
    pg_round_down,
    pg_round_up,
    pgaddr,
    pte_addr,
    pte_flags,
    ptx,
)
from xvkit.params import KERNBASE


@pytest.mark.parametrize("va", [0, 0x1234, KERNBASE, 0xFFFFFFFF, 0x00403ABC])
def test_address_decomposition_round_trip(va):
    assert pgaddr(pdx(va), ptx(va), va & (PGSIZE - 1)) == va


def test_indices_in_range():
    assert 0 <= pdx(0xFFFFFFFF) < 1024
    assert 0 <= ptx(0xFFFFFFFF) < 1024


def test_kernbase_starts_a_directory_slot():
    assert ptx(KERNBASE) == 0
    assert pgaddr(pdx(KERNBASE), 0, 0) == KERNBASE


def test_page_rounding():
    assert pg_round_up(0) == 0
    assert pg_round_up(1) == PGSIZE
    assert pg_round_up(PGSIZE) == PGSIZE
    assert pg_round_down(PGSIZE + 5) == PGSIZE
    assert pg_round_down(PGSIZE - 1) == 0


def test_pte_split():
    pte = 0x00ABC000 | PTE_P | PTE_W | PTE_U
    assert pte_addr(pte) | pte_flags(pte) == pte
    assert pte_flags(pte) == PTE_P | PTE_W | PTE_U
    assert pte_addr(pte) % PGSIZE == 0


def test_flat_kernel_code_segment_bytes():
    seg = SegmentDescriptor.segment(STA_X | STA_R, 0, 0xFFFFFFFF, 0)
    assert seg.pack() == b"\xff\xff\x00\x00\x00\x9a\xcf\x00"


def test_segment_matches_asm_access_byte():
    seg = SegmentDescriptor.segment(STA_W, 0, 0xFFFFFFFF, 0)
    data = seg.pack()
    assert data[5] == 0x90 | STA_W
    assert data[6] & 0xC0 == 0xC0


def test_user_segment_dpl():
    seg = SegmentDescriptor.segment(STA_X | STA_R, 0, 0xFFFFFFFF, DPL_USER)
    assert seg.dpl == DPL_USER
    assert SegmentDescriptor.unpack(seg.pack()) == seg


def test_segment16_is_byte_granular():
    seg = SegmentDescriptor.segment16(STS_T32A, 0x80112233, 0x67, 0)
    assert seg.g == 0
    assert seg.db == 1
    assert seg.lim_15_0 == 0x67
    base = seg.base_15_0 | (seg.base_23_16 << 16) | (seg.base_31_24 << 24)
    assert base == 0x80112233
    assert SegmentDescriptor.unpack(seg.pack()) == seg


def test_segment_unpack_bad_length():
    with pytest.raises(ValueError):
        SegmentDescriptor.unpack(b"\x00" * 7)


def test_segment_pack_rejects_oversized_field():
    with pytest.raises(ValueError):
        SegmentDescriptor(type=16).pack()


def test_trap_gate():
    gate = GateDescriptor.gate(True, SEG_KCODE << 3, 0x12345678, DPL_USER)
    assert gate.type == STS_TG32
    assert gate.p == 1
    assert gate.s == 0
    assert (gate.off_31_16 << 16) | gate.off_15_0 == 0x12345678
    assert GateDescriptor.unpack(gate.pack()) == gate


def test_interrupt_gate():
    gate = GateDescriptor.gate(False, SEG_KCODE << 3, 0x80105000, 0)
    assert gate.type == STS_IG32
    assert gate.cs == SEG_KCODE << 3
    assert len(gate.pack()) == GateDescriptor.SIZE


def test_trap_frame_round_trip():
    tf = TrapFrame(eax=7, trapno=64, eip=0x1000, cs=0x1B, esp=0x3FFC, ss=0x23, eflags=0x200)
    data = tf.pack()
    assert len(data) == TrapFrame.SIZE
    assert TrapFrame.unpack(data) == tf


def test_trap_frame_size():
    assert len(TrapFrame().pack()) == 76


def test_trap_frame_unpack_short():
    with pytest.raises(ValueError):
        TrapFrame.unpack(b"\x00" * 10)