import pytest

from xvkit.umalloc import UNIT, Heap


def test_sbrk_returns_old_break():
    heap = Heap(limit=1000)
    start = heap.sbrk(0)
    assert heap.sbrk(100) == start
    assert heap.sbrk(-50) == start + 100
    assert heap.brk == start + 50
    with pytest.raises(MemoryError):
        heap.sbrk(10_000)


def test_blocks_are_aligned_and_disjoint():
    heap = Heap()
    sizes = [1, 10, 100, 1000, 7]
    addrs = [heap.malloc(n) for n in sizes]
    assert all(a % UNIT == 0 for a in addrs)
    spans = sorted((a, a + n) for a, n in zip(addrs, sizes))
    assert all(end <= nxt for (_, end), (nxt, _) in zip(spans, spans[1:]))


def test_free_all_coalesces_to_one_block():
    heap = Heap()
    addrs = [heap.malloc(n) for n in (24, 300, 8, 4000)]
    for a in reversed(addrs[::2]):
        heap.free(a)
    for a in addrs[1::2]:
        heap.free(a)
    blocks = heap.free_blocks()
    assert len(blocks) == 1
    assert blocks[0][1] * UNIT == heap.brk - UNIT


def test_freed_block_is_reused():
    heap = Heap()
    a = heap.malloc(64)
    heap.malloc(64)
    heap.free(a)
    assert heap.malloc(64) == a


def test_out_of_memory_and_bad_free():
    heap = Heap(limit=4096)
    with pytest.raises(MemoryError):
        heap.malloc(10)
    heap = Heap()
    a = heap.malloc(10)
    heap.free(a)
    with pytest.raises(ValueError):
        heap.free(a)
    with pytest.raises(ValueError):
        heap.free(12345)