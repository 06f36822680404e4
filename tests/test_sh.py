import pytest

from xvkit.params import OpenFlag
from xvkit.sh import (
    MAXARGS,
    BackCmd,
    ExecCmd,
    ListCmd,
    PipeCmd,
    RedirCmd,
    ShellSyntaxError,
    Tokenizer,
    parse_cmd,
)

WRITE_MODE = int(OpenFlag.WRONLY | OpenFlag.CREATE)


def test_simple_command():
    assert parse_cmd("echo hello world\n") == ExecCmd(["echo", "hello", "world"])


def test_empty_line_gives_empty_exec():
    assert parse_cmd("\n") == ExecCmd([])


def test_redirections_nest_in_order():
    cmd = parse_cmd("cat < in > out")
    inner = RedirCmd(ExecCmd(["cat"]), "in", int(OpenFlag.RDONLY), 0)
    assert cmd == RedirCmd(inner, "out", WRITE_MODE, 1)


def test_append_opens_like_write():
    assert parse_cmd("echo x >> log") == RedirCmd(ExecCmd(["echo", "x"]), "log", WRITE_MODE, 1)


def test_redirection_before_words():
    assert parse_cmd("< in cat") == RedirCmd(ExecCmd(["cat"]), "in", int(OpenFlag.RDONLY), 0)


def test_pipeline_is_right_nested():
    cmd = parse_cmd("ls | grep x | wc")
    assert cmd == PipeCmd(ExecCmd(["ls"]), PipeCmd(ExecCmd(["grep", "x"]), ExecCmd(["wc"])))


def test_symbols_need_no_spaces():
    assert parse_cmd("echo a|wc") == PipeCmd(ExecCmd(["echo", "a"]), ExecCmd(["wc"]))


def test_list():
    assert parse_cmd("a ; b") == ListCmd(ExecCmd(["a"]), ExecCmd(["b"]))


def test_background():
    assert parse_cmd("sleep &") == BackCmd(ExecCmd(["sleep"]))


def test_background_then_list():
    assert parse_cmd("a & ; b") == ListCmd(BackCmd(ExecCmd(["a"])), ExecCmd(["b"]))


def test_block_with_redirection():
    cmd = parse_cmd("(a ; b) > out")
    assert cmd == RedirCmd(ListCmd(ExecCmd(["a"]), ExecCmd(["b"])), "out", WRITE_MODE, 1)


def test_word_after_background_is_leftover():
    with pytest.raises(ShellSyntaxError, match="leftovers"):
        parse_cmd("a & b")


def test_stray_close_paren_is_leftover():
    with pytest.raises(ShellSyntaxError, match="leftovers"):
        parse_cmd("a )")


def test_missing_close_paren():
    with pytest.raises(ShellSyntaxError, match=r"missing \)"):
        parse_cmd("(a")


def test_missing_redirection_file():
    with pytest.raises(ShellSyntaxError, match="missing file for redirection"):
        parse_cmd("cat <")


def test_too_many_args():
    words = [f"w{i}" for i in range(MAXARGS)]
    with pytest.raises(ShellSyntaxError, match="too many args"):
        parse_cmd(" ".join(words))


def test_most_args_allowed():
    words = [f"w{i}" for i in range(MAXARGS - 1)]
    assert parse_cmd(" ".join(words)) == ExecCmd(words)


def test_nul_ends_line():
    assert parse_cmd("echo a\0 b") == ExecCmd(["echo", "a"])


def test_tokenizer_sequence():
    tok = Tokenizer("a>>b")
    assert tok.next_token() == (Tokenizer.WORD, "a")
    assert tok.next_token() == (Tokenizer.APPEND, ">>")
    assert tok.next_token() == (Tokenizer.WORD, "b")
    assert tok.next_token() == (Tokenizer.END, "")


def test_peek_skips_whitespace_without_consuming():
    tok = Tokenizer("   | x")
    assert tok.peek("|") is True
    assert tok.rest == "| x"
    assert tok.peek("") is False