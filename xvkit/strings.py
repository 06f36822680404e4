"""NUL-terminated string and memory routines over byte strings."""

from __future__ import annotations

from itertools import zip_longest
from typing import Union

BytesLike = Union[bytes, bytearray, memoryview, str]


def _as_bytes(s: BytesLike) -> bytes:
    if isinstance(s, str):
        return s.encode("latin-1")
    return bytes(s)


def _cstr(s: BytesLike) -> bytes:
    data = _as_bytes(s)
    end = data.find(b"\0")
    return data if end < 0 else data[:end]


def memcmp(a: BytesLike, b: BytesLike, n: int) -> int:
    """Compare the first n bytes; the sign gives the order."""
    left, right = _as_bytes(a), _as_bytes(b)
    if n < 0 or n > len(left) or n > len(right):
        raise ValueError(f"cannot compare {n} bytes")
    for x, y in zip(left[:n], right[:n]):
        if x != y:
            return x - y
    return 0


def memmove(buf: bytearray, dst: int, src: int, n: int) -> bytearray:
    """Copy n bytes within buf from src to dst; overlapping regions are safe."""
    if n < 0 or dst < 0 or src < 0 or dst + n > len(buf) or src + n > len(buf):
        raise IndexError("memmove out of range")
    buf[dst:dst + n] = buf[src:src + n]
    return buf


def strlen(s: BytesLike) -> int:
    """Length up to the first NUL."""
    return len(_cstr(s))


def strcmp(p: BytesLike, q: BytesLike) -> int:
    """Compare two NUL-terminated strings as unsigned bytes."""
    for x, y in zip_longest(_cstr(p), _cstr(q), fillvalue=0):
        if x != y:
            return x - y
    return 0


def strncmp(p: BytesLike, q: BytesLike, n: int) -> int:
    """Compare at most n bytes of two NUL-terminated strings."""
    if n < 0:
        raise ValueError("n must not be negative")
    return strcmp(_cstr(p)[:n], _cstr(q)[:n])


def strncpy(t: BytesLike, n: int) -> bytes:
    """Exactly n bytes: the string, truncated or padded with NULs."""
    if n <= 0:
        return b""
    return _cstr(t)[:n].ljust(n, b"\0")


def safestrcpy(t: BytesLike, n: int) -> bytes:
    """At most n-1 bytes of the string followed by a NUL; empty if n <= 0."""
    if n <= 0:
        return b""
    return _cstr(t)[:n - 1] + b"\0"


def atoi(s: BytesLike) -> int:
    """Value of the leading decimal digits, wrapping as a 32-bit int."""
    n = 0
    for ch in _as_bytes(s):
        if not 0x30 <= ch <= 0x39:
            break
        n = (n * 10 + ch - 0x30) & 0xFFFFFFFF
    return n - (1 << 32) if n & 0x80000000 else n


def strchr(s: BytesLike, c: Union[int, str, bytes]) -> int | None:
    """Index of the first c before the terminating NUL, or None."""
    if isinstance(c, (str, bytes)):
        if len(c) != 1:
            raise ValueError("strchr needs a single character")
        c = _as_bytes(c)[0]
    index = _cstr(s).find(bytes([c & 0xFF])) if c & 0xFF else -1
    return None if index < 0 else index