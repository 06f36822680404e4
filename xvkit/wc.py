"""Count lines, words and bytes."""

from __future__ import annotations

import sys
from dataclasses import dataclass
from typing import BinaryIO, Iterable, Iterator, Optional, Sequence

_WHITESPACE = frozenset(b" \r\t\n\v")
_CHUNK = 512


@dataclass(frozen=True)
class WordCount:
    """Totals for one input."""

    lines: int = 0
    words: int = 0
    chars: int = 0


def count(chunks: Iterable[bytes]) -> WordCount:
    """Count over a stream of byte chunks; words may span chunks."""
    lines = words = chars = 0
    inword = False
    for chunk in chunks:
        chars += len(chunk)
        lines += chunk.count(b"\n")
        for byte in chunk:
            if byte in _WHITESPACE:
                inword = False
            elif not inword:
                words += 1
                inword = True
    return WordCount(lines, words, chars)


def _read_chunks(stream: BinaryIO) -> Iterator[bytes]:
    while chunk := stream.read(_CHUNK):
        yield chunk


def _report(stream: BinaryIO, name: str) -> bool:
    try:
        result = count(_read_chunks(stream))
    except OSError:
        print("wc: read error")
        return False
    print(f"{result.lines} {result.words} {result.chars} {name}")
    return True


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Report counts for each named file, or for standard input if none."""
    names = sys.argv[1:] if argv is None else list(argv)
    if not names:
        return 0 if _report(sys.stdin.buffer, "") else 1
    for name in names:
        try:
            stream = open(name, "rb")
        except OSError:
            print(f"wc: cannot open {name}")
            return 1
        with stream:
            if not _report(stream, name):
                return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())