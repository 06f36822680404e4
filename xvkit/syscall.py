"""System call argument fetching and dispatch."""

from __future__ import annotations

import struct
import sys
from dataclasses import dataclass, field
from typing import Callable, Optional, TextIO

from xvkit.mmu import TrapFrame

_WORD_MASK = 0xFFFFFFFF
_INT = struct.Struct("<i")


class BadAddress(Exception):
    """Raised when a user address lies outside the process."""


@dataclass
class Process:
    """A user process: its memory from address 0 and its saved registers."""

    pid: int = 1
    name: str = ""
    memory: bytearray = field(default_factory=bytearray)
    tf: TrapFrame = field(default_factory=TrapFrame)

    @property
    def sz(self) -> int:
        """Size of the process's memory in bytes."""
        return len(self.memory)

    def fetch_int(self, addr: int) -> int:
        """The 32-bit int at addr."""
        addr &= _WORD_MASK
        if addr >= self.sz or addr + 4 > self.sz:
            raise BadAddress(f"int at {addr:#x} outside process")
        return _INT.unpack_from(self.memory, addr)[0]

    def fetch_str(self, addr: int) -> bytes:
        """The NUL-terminated string at addr, without its NUL."""
        addr &= _WORD_MASK
        if addr >= self.sz:
            raise BadAddress(f"string at {addr:#x} outside process")
        end = self.memory.find(0, addr)
        if end < 0:
            raise BadAddress(f"string at {addr:#x} not terminated")
        return bytes(self.memory[addr:end])

    def arg_int(self, n: int) -> int:
        """The nth 32-bit system call argument."""
        return self.fetch_int((self.tf.esp + 4 + 4 * n) & _WORD_MASK)

    def arg_ptr(self, n: int, size: int) -> int:
        """The nth argument as the address of size bytes inside the process."""
        addr = self.arg_int(n) & _WORD_MASK
        if size < 0 or addr >= self.sz or addr + size > self.sz:
            raise BadAddress(f"block of {size} bytes at {addr:#x} outside process")
        return addr

    def arg_str(self, n: int) -> bytes:
        """The nth argument as a NUL-terminated string."""
        return self.fetch_str(self.arg_int(n))


Handler = Callable[[Process], int]


class SyscallTable:
    """Maps system call numbers to handlers and runs them."""

    def __init__(self, console: Optional[TextIO] = None) -> None:
        self._handlers: dict[int, Handler] = {}
        self._console = console

    def register(self, number: int, handler: Handler) -> None:
        """Install handler for a positive call number."""
        if number <= 0:
            raise ValueError(f"system call number must be positive, got {number}")
        self._handlers[int(number)] = handler

    def dispatch(self, proc: Process) -> int:
        """Run the call named in %eax and leave its result there.

        A handler that raises BadAddress, like an unknown call, yields -1.
        """
        num = proc.tf.eax & _WORD_MASK
        if num & 0x80000000:
            num -= 1 << 32
        handler = self._handlers.get(num) if num > 0 else None
        if handler is None:
            console = sys.stderr if self._console is None else self._console
            print(f"{proc.pid} {proc.name}: unknown sys call {num}", file=console)
            result = -1
        else:
            try:
                result = handler(proc)
            except BadAddress:
                result = -1
        proc.tf.eax = result & _WORD_MASK
        return result