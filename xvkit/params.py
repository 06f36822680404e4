"""System-wide parameters, open flags, file types, system call numbers and memory layout."""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import ClassVar

# Kernel limits.
NPROC = 64
KSTACKSIZE = 4096
NCPU = 8
NOFILE = 16
NFILE = 100
NINODE = 50
NDEV = 10
ROOTDEV = 1
MAXARG = 32
MAXOPBLOCKS = 10
LOGSIZE = MAXOPBLOCKS * 3
NBUF = MAXOPBLOCKS * 3
FSSIZE = 1000

# Memory layout.
EXTMEM = 0x100000
PHYSTOP = 0xE000000
DEVSPACE = 0xFE000000
KERNBASE = 0x80000000
KERNLINK = KERNBASE + EXTMEM

_WORD_MASK = 0xFFFFFFFF

# Processor-defined traps.
T_DIVIDE = 0
T_DEBUG = 1
T_NMI = 2
T_BRKPT = 3
T_OFLOW = 4
T_BOUND = 5
T_ILLOP = 6
T_DEVICE = 7
T_DBLFLT = 8
T_TSS = 10
T_SEGNP = 11
T_STACK = 12
T_GPFLT = 13
T_PGFLT = 14
T_FPERR = 16
T_ALIGN = 17
T_MCHK = 18
T_SIMDERR = 19

T_SYSCALL = 64
T_DEFAULT = 500
T_IRQ0 = 32

IRQ_TIMER = 0
IRQ_KBD = 1
IRQ_COM1 = 4
IRQ_IDE = 14
IRQ_ERROR = 19
IRQ_SPURIOUS = 31


class OpenFlag(IntFlag):
    """Mode bits accepted by open()."""

    RDONLY = 0x000
    WRONLY = 0x001
    RDWR = 0x002
    CREATE = 0x200


class FileType(IntEnum):
    """Kinds of inode."""

    DIR = 1
    FILE = 2
    DEV = 3


class SyscallNumber(IntEnum):
    """System call numbers."""

    FORK = 1
    EXIT = 2
    WAIT = 3
    PIPE = 4
    READ = 5
    KILL = 6
    EXEC = 7
    FSTAT = 8
    CHDIR = 9
    DUP = 10
    GETPID = 11
    SBRK = 12
    SLEEP = 13
    UPTIME = 14
    OPEN = 15
    WRITE = 16
    MKNOD = 17
    UNLINK = 18
    LINK = 19
    MKDIR = 20
    CLOSE = 21
    GETPINFO = 22
    SETTICKETS = 23


def v2p(addr: int) -> int:
    """Translate a kernel virtual address to a physical one."""
    return (addr - KERNBASE) & _WORD_MASK


def p2v(addr: int) -> int:
    """Translate a physical address to a kernel virtual one."""
    return (addr + KERNBASE) & _WORD_MASK


@dataclass
class Stat:
    """File status as returned by fstat()."""

    type: int = 0
    dev: int = 0
    ino: int = 0
    nlink: int = 0
    size: int = 0

    _FORMAT: ClassVar[struct.Struct] = struct.Struct("<hxxiIhxxI")
    SIZE: ClassVar[int] = _FORMAT.size

    def pack(self) -> bytes:
        """Encode in the kernel's in-memory layout."""
        try:
            return self._FORMAT.pack(self.type, self.dev, self.ino, self.nlink, self.size)
        except struct.error as exc:
            raise ValueError(f"stat field out of range: {exc}") from exc

    @classmethod
    def unpack(cls, data: bytes) -> "Stat":
        """Decode from the kernel's in-memory layout."""
        if len(data) < cls.SIZE:
            raise ValueError(f"stat needs {cls.SIZE} bytes, got {len(data)}")
        return cls(*cls._FORMAT.unpack_from(data))