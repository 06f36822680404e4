"""Command-line parser for the shell: tokens, command trees and redirections."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Union

from xvkit.params import OpenFlag

WHITESPACE = " \t\r\n\v"
SYMBOLS = "<|>&;()"
MAXARGS = 10


class ShellSyntaxError(ValueError):
    """Raised for a command line the shell cannot parse."""


@dataclass
class ExecCmd:
    """Run a program with arguments; argv[0] names the program."""

    argv: list[str] = field(default_factory=list)


@dataclass
class RedirCmd:
    """Run cmd with file descriptor fd reopened on file."""

    cmd: "Command"
    file: str
    mode: int
    fd: int


@dataclass
class PipeCmd:
    """Connect the output of left to the input of right."""

    left: "Command"
    right: "Command"


@dataclass
class ListCmd:
    """Run left, wait for it, then run right."""

    left: "Command"
    right: "Command"


@dataclass
class BackCmd:
    """Run cmd without waiting for it."""

    cmd: "Command"


Command = Union[ExecCmd, RedirCmd, PipeCmd, ListCmd, BackCmd]


class Tokenizer:
    """Splits a command line into words and operator symbols."""

    END = ""
    WORD = "a"
    APPEND = "+"

    def __init__(self, line: str) -> None:
        end = line.find("\0")
        self.line = line if end < 0 else line[:end]
        self.pos = 0

    @property
    def rest(self) -> str:
        """The part of the line not yet consumed."""
        return self.line[self.pos:]

    def _skip_space(self) -> None:
        while self.pos < len(self.line) and self.line[self.pos] in WHITESPACE:
            self.pos += 1

    def peek(self, toks: str) -> bool:
        """Skip whitespace; whether the next character is one of toks."""
        self._skip_space()
        return self.pos < len(self.line) and self.line[self.pos] in toks

    def next_token(self) -> tuple[str, str]:
        """Consume one token and return (kind, text).

        The kind is END at the end of the line, WORD for a word, APPEND for
        ">>", and otherwise the symbol itself.
        """
        self._skip_space()
        line = self.line
        start = self.pos
        if start >= len(line):
            kind = self.END
        else:
            ch = line[start]
            if ch in "|();&<":
                kind = ch
                self.pos += 1
            elif ch == ">":
                self.pos += 1
                if self.pos < len(line) and line[self.pos] == ">":
                    kind = self.APPEND
                    self.pos += 1
                else:
                    kind = ">"
            else:
                kind = self.WORD
                while (
                    self.pos < len(line)
                    and line[self.pos] not in WHITESPACE
                    and line[self.pos] not in SYMBOLS
                ):
                    self.pos += 1
        text = line[start:self.pos]
        self._skip_space()
        return kind, text


def parse_cmd(line: str) -> Command:
    """Parse a whole command line into a command tree."""
    tok = Tokenizer(line)
    cmd = _parse_line(tok)
    tok.peek("")
    if tok.rest:
        raise ShellSyntaxError(f"leftovers: {tok.rest}")
    return cmd


def _parse_line(tok: Tokenizer) -> Command:
    cmd = _parse_pipe(tok)
    while tok.peek("&"):
        tok.next_token()
        cmd = BackCmd(cmd)
    if tok.peek(";"):
        tok.next_token()
        cmd = ListCmd(cmd, _parse_line(tok))
    return cmd


def _parse_pipe(tok: Tokenizer) -> Command:
    cmd = _parse_exec(tok)
    if tok.peek("|"):
        tok.next_token()
        cmd = PipeCmd(cmd, _parse_pipe(tok))
    return cmd


def _parse_redirs(cmd: Command, tok: Tokenizer) -> Command:
    while tok.peek("<>"):
        kind, _ = tok.next_token()
        file_kind, file = tok.next_token()
        if file_kind != Tokenizer.WORD:
            raise ShellSyntaxError("missing file for redirection")
        if kind == "<":
            cmd = RedirCmd(cmd, file, int(OpenFlag.RDONLY), 0)
        else:
            # ">" and ">>" both open for writing, creating the file.
            cmd = RedirCmd(cmd, file, int(OpenFlag.WRONLY | OpenFlag.CREATE), 1)
    return cmd


def _parse_block(tok: Tokenizer) -> Command:
    if not tok.peek("("):
        raise ShellSyntaxError("parseblock")
    tok.next_token()
    cmd = _parse_line(tok)
    if not tok.peek(")"):
        raise ShellSyntaxError("syntax - missing )")
    tok.next_token()
    return _parse_redirs(cmd, tok)


def _parse_exec(tok: Tokenizer) -> Command:
    if tok.peek("("):
        return _parse_block(tok)
    exec_cmd = ExecCmd()
    ret = _parse_redirs(exec_cmd, tok)
    while not tok.peek("|)&;"):
        kind, text = tok.next_token()
        if kind == Tokenizer.END:
            break
        if kind != Tokenizer.WORD:
            raise ShellSyntaxError("syntax")
        exec_cmd.argv.append(text)
        if len(exec_cmd.argv) >= MAXARGS:
            raise ShellSyntaxError("too many args")
        ret = _parse_redirs(ret, tok)
    return ret