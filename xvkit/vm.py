"""Two-level x86 page tables over a simulated pool of physical pages."""

from __future__ import annotations

import struct
from typing import Optional

from xvkit.mmu import (
    NPDENTRIES,
    PGSIZE,
    PTE_P,
    PTE_U,
    PTE_W,
    pdx,
    pg_round_down,
    pg_round_up,
    pgaddr,
    pte_addr,
    pte_flags,
    ptx,
)
from xvkit.params import DEVSPACE, EXTMEM, KERNBASE, KERNLINK, PHYSTOP, p2v, v2p

_WORD_MASK = 0xFFFFFFFF
_WORD = struct.Struct("<I")


class VMError(Exception):
    """Raised where the kernel would panic or a mapping request is invalid."""


class OutOfMemory(VMError):
    """Raised when no physical page is left."""


class PageAllocator:
    """Hands out zeroed 4096-byte physical pages from a fixed range."""

    def __init__(self, start: int, end: int) -> None:
        first = pg_round_up(start)
        self._free: list[int] = list(range(first, end - PGSIZE + 1, PGSIZE))
        self._pages: dict[int, bytearray] = {}

    @property
    def free_pages(self) -> int:
        """Number of pages still available."""
        return len(self._free)

    def alloc(self) -> int:
        """Physical address of a fresh zeroed page."""
        if not self._free:
            raise OutOfMemory("out of physical pages")
        pa = self._free.pop()
        self._pages[pa] = bytearray(PGSIZE)
        return pa

    def free(self, pa: int) -> None:
        """Return a page to the pool."""
        if pa % PGSIZE or pa not in self._pages:
            raise VMError(f"kfree: {pa:#x} is not an allocated page")
        del self._pages[pa]
        self._free.append(pa)

    def page(self, pa: int) -> bytearray:
        """Contents of an allocated page."""
        try:
            return self._pages[pa]
        except KeyError:
            raise VMError(f"no allocated page at {pa:#x}") from None


class _PteSlot:
    """One 32-bit entry inside a page directory or page table page."""

    __slots__ = ("_page", "_offset")

    def __init__(self, page: bytearray, index: int) -> None:
        self._page = page
        self._offset = index * 4

    @property
    def value(self) -> int:
        return _WORD.unpack_from(self._page, self._offset)[0]

    @value.setter
    def value(self, v: int) -> None:
        _WORD.pack_into(self._page, self._offset, v & _WORD_MASK)


class PageTable:
    """A page directory with its page tables, all held in allocator pages."""

    def __init__(self, allocator: PageAllocator) -> None:
        self.allocator = allocator
        self.pgdir = allocator.alloc()
        self.kernel_data: Optional[int] = None

    def walk(self, va: int, alloc: bool = False) -> Optional[_PteSlot]:
        """The entry for va, creating its page table if alloc; None if absent."""
        pde = _PteSlot(self.allocator.page(self.pgdir), pdx(va))
        if pde.value & PTE_P:
            table = pte_addr(pde.value)
        else:
            if not alloc:
                return None
            table = self.allocator.alloc()
            pde.value = table | PTE_P | PTE_W | PTE_U
        return _PteSlot(self.allocator.page(table), ptx(va))

    def map_pages(self, va: int, size: int, pa: int, perm: int) -> None:
        """Map [va, va+size) to physical memory starting at pa."""
        a = pg_round_down(va)
        last = pg_round_down((va + size - 1) & _WORD_MASK)
        while True:
            pte = self.walk(a, True)
            if pte.value & PTE_P:
                raise VMError(f"remap of {a:#x}")
            pte.value = pa | perm | PTE_P
            if a == last:
                break
            a = (a + PGSIZE) & _WORD_MASK
            pa = (pa + PGSIZE) & _WORD_MASK

    def init_user(self, code: bytes) -> None:
        """Load code, smaller than a page, at user address 0."""
        if len(code) >= PGSIZE:
            raise VMError("inituvm: more than a page")
        mem = self.allocator.alloc()
        self.map_pages(0, PGSIZE, mem, PTE_W | PTE_U)
        self.allocator.page(mem)[: len(code)] = code

    def load_user(self, addr: int, source: bytes, offset: int, size: int) -> None:
        """Copy size bytes of source from offset into already mapped pages at addr."""
        if addr % PGSIZE:
            raise VMError("loaduvm: addr must be page aligned")
        for i in range(0, size, PGSIZE):
            pte = self.walk(addr + i)
            if pte is None:
                raise VMError("loaduvm: address should exist")
            n = min(size - i, PGSIZE)
            chunk = source[offset + i: offset + i + n]
            if len(chunk) != n:
                raise VMError("loaduvm: short read")
            self.allocator.page(pte_addr(pte.value))[:n] = chunk

    def alloc_user(self, oldsz: int, newsz: int) -> int:
        """Grow user memory from oldsz to newsz; returns the new size."""
        if newsz >= KERNBASE:
            raise VMError("user size reaches kernel space")
        if newsz < oldsz:
            return oldsz
        for a in range(pg_round_up(oldsz), newsz, PGSIZE):
            try:
                mem = self.allocator.alloc()
            except OutOfMemory:
                self.dealloc_user(newsz, oldsz)
                raise
            try:
                self.map_pages(a, PGSIZE, mem, PTE_W | PTE_U)
            except OutOfMemory:
                self.dealloc_user(newsz, oldsz)
                self.allocator.free(mem)
                raise
        return newsz

    def dealloc_user(self, oldsz: int, newsz: int) -> int:
        """Shrink user memory from oldsz to newsz; returns the new size."""
        if newsz >= oldsz:
            return oldsz
        a = pg_round_up(newsz)
        while a < oldsz:
            pte = self.walk(a)
            if pte is None:
                a = pgaddr(pdx(a) + 1, 0, 0) - PGSIZE
            elif pte.value & PTE_P:
                pa = pte_addr(pte.value)
                if pa == 0:
                    raise VMError("kfree")
                self.allocator.free(pa)
                pte.value = 0
            a += PGSIZE
        return newsz

    def free(self) -> None:
        """Release all user pages, the page tables and the directory."""
        self.dealloc_user(KERNBASE, 0)
        directory = self.allocator.page(self.pgdir)
        for (entry,) in _WORD.iter_unpack(bytes(directory[: NPDENTRIES * 4])):
            if entry & PTE_P:
                self.allocator.free(pte_addr(entry))
        self.allocator.free(self.pgdir)

    def clear_user(self, uva: int) -> None:
        """Make a page inaccessible to user code."""
        pte = self.walk(uva)
        if pte is None:
            raise VMError("clearpteu")
        pte.value = pte.value & ~PTE_U

    def copy(self, size: int) -> "PageTable":
        """A new table holding a copy of the first size bytes of user memory."""
        if self.kernel_data is not None:
            child = setup_kernel_vm(self.allocator, self.kernel_data)
        else:
            child = PageTable(self.allocator)
        try:
            for i in range(0, size, PGSIZE):
                pte = self.walk(i)
                if pte is None:
                    raise VMError("copyuvm: pte should exist")
                if not pte.value & PTE_P:
                    raise VMError("copyuvm: page not present")
                mem = self.allocator.alloc()
                self.allocator.page(mem)[:] = self.allocator.page(pte_addr(pte.value))
                try:
                    child.map_pages(i, PGSIZE, mem, pte_flags(pte.value))
                except OutOfMemory:
                    self.allocator.free(mem)
                    raise
        except OutOfMemory:
            child.free()
            raise
        return child

    def user_to_kernel(self, uva: int) -> Optional[int]:
        """Physical address of the user-accessible page at uva, or None."""
        pte = self.walk(uva)
        if pte is None or not pte.value & PTE_P or not pte.value & PTE_U:
            return None
        return pte_addr(pte.value)

    def copy_out(self, va: int, data: bytes) -> None:
        """Write data into user memory at va."""
        view = memoryview(bytes(data))
        while view:
            va0 = pg_round_down(va)
            pa0 = self.user_to_kernel(va0)
            if pa0 is None:
                raise VMError(f"user address {va:#x} not accessible")
            start = va - va0
            n = min(PGSIZE - start, len(view))
            self.allocator.page(pa0)[start:start + n] = view[:n]
            view = view[n:]
            va = va0 + PGSIZE


def setup_kernel_vm(allocator: PageAllocator, data_addr: int) -> PageTable:
    """A page table holding the kernel mappings; data_addr ends kernel text."""
    if p2v(PHYSTOP) > DEVSPACE:
        raise VMError("PHYSTOP too high")
    if not KERNLINK < data_addr <= p2v(PHYSTOP):
        raise ValueError(f"kernel data address {data_addr:#x} out of range")
    kmap = (
        (KERNBASE, 0, EXTMEM, PTE_W),
        (KERNLINK, v2p(KERNLINK), v2p(data_addr), 0),
        (data_addr, v2p(data_addr), PHYSTOP, PTE_W),
        (DEVSPACE, DEVSPACE, 0, PTE_W),
    )
    table = PageTable(allocator)
    table.kernel_data = data_addr
    try:
        for virt, start, end, perm in kmap:
            table.map_pages(virt, (end - start) & _WORD_MASK, start, perm)
    except OutOfMemory:
        table.free()
        raise
    return table