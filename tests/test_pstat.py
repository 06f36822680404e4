import pytest

from xvkit.pstat import ProcInfo, ProcState, format_table

HEADER = "PID\tTKTS\tTCKS\tSTAT\tNAME\n"


def test_empty_table_is_header_only():
    assert format_table([]) == HEADER


def test_rows_follow_header():
    entries = [
        ProcInfo(inuse=True, tickets=10, pid=1, ticks=5, name="init", state=ProcState.SLEEPING),
        ProcInfo(inuse=True, tickets=20, pid=2, ticks=3, name="sh", state=ProcState.RUNNING),
    ]
    assert format_table(entries) == HEADER + "1\t10\t5\tS\tinit\n" + "2\t20\t3\tR\tsh\n"


def test_stops_at_first_empty_pid():
    entries = [
        ProcInfo(pid=3, tickets=10, name="a", state="A"),
        ProcInfo(pid=0),
        ProcInfo(pid=4, tickets=10, name="b", state="Z"),
    ]
    table = format_table(entries)
    assert table.splitlines()[1:] == ["3\t10\t0\tA\ta"]


def test_state_letters():
    assert ProcState("E") is ProcState.EMBRYO
    assert ProcState("A") is ProcState.RUNNABLE
    assert ProcInfo(state="Z").state is ProcState.ZOMBIE


def test_unknown_state_rejected():
    with pytest.raises(ValueError):
        ProcInfo(state="X")


def test_name_must_fit():
    assert ProcInfo(name="x" * 15).name == "x" * 15
    with pytest.raises(ValueError):
        ProcInfo(name="x" * 16)