"""Spin locks with interrupt-disable nesting, and sleeping locks."""

from __future__ import annotations

import threading
from typing import Optional


class LockError(RuntimeError):
    """Raised where the kernel would panic on lock misuse."""


class Cpu:
    """Interrupt state of one processor."""

    def __init__(self, ident: int = 0, interrupts_enabled: bool = True) -> None:
        self.ident = ident
        self.interrupts_enabled = interrupts_enabled
        self.ncli = 0
        self.intena = False

    def push_cli(self) -> None:
        """Disable interrupts, remembering whether they were on at the outermost level."""
        was_enabled = self.interrupts_enabled
        self.interrupts_enabled = False
        if self.ncli == 0:
            self.intena = was_enabled
        self.ncli += 1

    def pop_cli(self) -> None:
        """Undo one push_cli; re-enable interrupts at the outermost level."""
        if self.interrupts_enabled:
            raise LockError("popcli - interruptible")
        if self.ncli == 0:
            raise LockError("popcli")
        self.ncli -= 1
        if self.ncli == 0 and self.intena:
            self.interrupts_enabled = True


class SpinLock:
    """Mutual exclusion between CPUs; interrupts stay off while held."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.locked = False
        self.cpu: Optional[Cpu] = None
        self._lock = threading.Lock()

    def acquire(self, cpu: Cpu) -> None:
        """Take the lock, waiting while another CPU holds it."""
        cpu.push_cli()
        if self.holding(cpu):
            cpu.pop_cli()
            raise LockError(f"acquire: {self.name} already held")
        self._lock.acquire()
        self.locked = True
        self.cpu = cpu

    def release(self, cpu: Cpu) -> None:
        """Give up the lock held by cpu."""
        if not self.holding(cpu):
            raise LockError(f"release: {self.name} not held")
        self.cpu = None
        self.locked = False
        self._lock.release()
        cpu.pop_cli()

    def holding(self, cpu: Cpu) -> bool:
        """Whether cpu holds the lock."""
        cpu.push_cli()
        result = self.locked and self.cpu is cpu
        cpu.pop_cli()
        return result


class SleepLock:
    """A long-term lock; waiters sleep until it is released."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.locked = False
        self.pid = 0
        self._cond = threading.Condition()

    def acquire(self, pid: int) -> None:
        """Take the lock for process pid, sleeping while it is held."""
        with self._cond:
            while self.locked:
                self._cond.wait()
            self.locked = True
            self.pid = pid

    def release(self) -> None:
        """Release the lock and wake all sleepers."""
        with self._cond:
            self.locked = False
            self.pid = 0
            self._cond.notify_all()

    def holding(self, pid: int) -> bool:
        """Whether process pid holds the lock."""
        with self._cond:
            return self.locked and self.pid == pid