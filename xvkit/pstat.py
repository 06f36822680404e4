"""Process table snapshots and their ps-style listing."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Iterable

NAME_LEN = 16
HEADER = "PID\tTKTS\tTCKS\tSTAT\tNAME\n"


class ProcState(str, Enum):
    """One-letter process states as reported by getpinfo."""

    EMBRYO = "E"
    RUNNING = "R"
    RUNNABLE = "A"
    SLEEPING = "S"
    ZOMBIE = "Z"


@dataclass
class ProcInfo:
    """One slot of the process table."""

    inuse: bool = False
    tickets: int = 0
    pid: int = 0
    ticks: int = 0
    name: str = ""
    state: ProcState = ProcState.EMBRYO

    def __post_init__(self) -> None:
        self.state = ProcState(self.state)
        if len(self.name.encode()) >= NAME_LEN:
            raise ValueError(f"process name longer than {NAME_LEN - 1} bytes: {self.name!r}")


def format_table(entries: Iterable[ProcInfo]) -> str:
    """The ps listing: a header, then one row per entry up to the first with pid 0."""
    rows = [HEADER]
    for entry in entries:
        if entry.pid == 0:
            break
        rows.append(
            f"{entry.pid}\t{entry.tickets}\t{entry.ticks}\t{entry.state.value}\t{entry.name}\n"
        )
    return "".join(rows)