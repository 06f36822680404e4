"""A first-fit free-list allocator over a growable simulated heap."""

from __future__ import annotations

import struct

UNIT = 8  # bytes in one header: next pointer and size in units
_HEADER = struct.Struct("<II")
_MIN_GROWTH = 4096


class Heap:
    """User-space malloc/free backed by an sbrk-grown arena of at most limit bytes."""

    def __init__(self, limit: int = 1 << 20) -> None:
        self.limit = limit
        # Address 0 holds the list base header; the break starts above it.
        self._mem = bytearray(UNIT)
        self._freep: int | None = None
        self._allocated: set[int] = set()

    @property
    def brk(self) -> int:
        """Current program break."""
        return len(self._mem)

    def sbrk(self, n: int) -> int:
        """Move the break by n bytes; returns the old break."""
        old = len(self._mem)
        new = old + n
        if new < UNIT or new > self.limit:
            raise MemoryError(f"cannot move break to {new}")
        if n >= 0:
            self._mem.extend(bytes(n))
        else:
            del self._mem[new:]
        return old

    def _ptr(self, h: int) -> int:
        return _HEADER.unpack_from(self._mem, h)[0]

    def _size(self, h: int) -> int:
        return _HEADER.unpack_from(self._mem, h)[1]

    def _set(self, h: int, ptr: int | None = None, size: int | None = None) -> None:
        old_ptr, old_size = _HEADER.unpack_from(self._mem, h)
        _HEADER.pack_into(
            self._mem, h,
            old_ptr if ptr is None else ptr,
            old_size if size is None else size,
        )

    def _release(self, ap: int) -> None:
        bp = ap - UNIT
        p = self._freep
        while not (p < bp < self._ptr(p)):
            nxt = self._ptr(p)
            if p >= nxt and (bp > p or bp < nxt):
                break
            p = nxt
        nxt = self._ptr(p)
        if bp + self._size(bp) * UNIT == nxt:
            self._set(bp, ptr=self._ptr(nxt), size=self._size(bp) + self._size(nxt))
        else:
            self._set(bp, ptr=nxt)
        if p + self._size(p) * UNIT == bp:
            self._set(p, ptr=self._ptr(bp), size=self._size(p) + self._size(bp))
        else:
            self._set(p, ptr=bp)
        self._freep = p

    def _morecore(self, nu: int) -> int | None:
        nu = max(nu, _MIN_GROWTH)
        try:
            hp = self.sbrk(nu * UNIT)
        except MemoryError:
            return None
        self._set(hp, size=nu)
        self._release(hp + UNIT)
        return self._freep

    def malloc(self, nbytes: int) -> int:
        """Address of a block of at least nbytes bytes."""
        if nbytes < 0:
            raise ValueError("size must not be negative")
        nunits = (nbytes + UNIT - 1) // UNIT + 1
        if self._freep is None:
            self._set(0, ptr=0, size=0)
            self._freep = 0
        prevp = self._freep
        p = self._ptr(prevp)
        while True:
            size = self._size(p)
            if size >= nunits:
                if size == nunits:
                    self._set(prevp, ptr=self._ptr(p))
                else:
                    self._set(p, size=size - nunits)
                    p += (size - nunits) * UNIT
                    self._set(p, size=nunits)
                self._freep = prevp
                self._allocated.add(p + UNIT)
                return p + UNIT
            if p == self._freep:
                grown = self._morecore(nunits)
                if grown is None:
                    raise MemoryError(f"cannot allocate {nbytes} bytes")
                p = grown
            prevp, p = p, self._ptr(p)

    def free(self, addr: int) -> None:
        """Return a block obtained from malloc."""
        if addr not in self._allocated:
            raise ValueError(f"{addr} was not allocated")
        self._allocated.discard(addr)
        self._release(addr)

    def free_blocks(self) -> list[tuple[int, int]]:
        """(address, size in units) of each free block, by address."""
        if self._freep is None:
            return []
        blocks = []
        p = self._ptr(0)
        while p != 0:
            blocks.append((p, self._size(p)))
            p = self._ptr(p)
        return sorted(blocks)