"""ELF executable headers."""

from __future__ import annotations

import struct
from dataclasses import dataclass, field
from typing import ClassVar

ELF_MAGIC = 0x464C457F

ELF_PROG_LOAD = 1

ELF_PROG_FLAG_EXEC = 1
ELF_PROG_FLAG_WRITE = 2
ELF_PROG_FLAG_READ = 4


class ElfError(ValueError):
    """Raised for data that is not a well-formed ELF image."""


@dataclass
class ProgramHeader:
    """One program segment header."""

    type: int = 0
    off: int = 0
    vaddr: int = 0
    paddr: int = 0
    filesz: int = 0
    memsz: int = 0
    flags: int = 0
    align: int = 0

    _FORMAT: ClassVar[struct.Struct] = struct.Struct("<8I")
    SIZE: ClassVar[int] = _FORMAT.size

    @classmethod
    def parse(cls, data: bytes, offset: int = 0) -> "ProgramHeader":
        """Read a program header at the given offset."""
        if offset < 0 or offset + cls.SIZE > len(data):
            raise ElfError(f"program header at {offset} runs past end of image")
        return cls(*cls._FORMAT.unpack_from(data, offset))

    def pack(self) -> bytes:
        """Encode as stored in the image."""
        try:
            return self._FORMAT.pack(
                self.type, self.off, self.vaddr, self.paddr,
                self.filesz, self.memsz, self.flags, self.align,
            )
        except struct.error as exc:
            raise ElfError(f"program header field out of range: {exc}") from exc

    def is_loadable(self) -> bool:
        """Whether the segment is to be loaded into memory."""
        return self.type == ELF_PROG_LOAD


@dataclass
class ElfHeader:
    """The ELF file header."""

    magic: int = ELF_MAGIC
    elf: bytes = field(default=bytes(12))
    type: int = 0
    machine: int = 0
    version: int = 0
    entry: int = 0
    phoff: int = 0
    shoff: int = 0
    flags: int = 0
    ehsize: int = 0
    phentsize: int = 0
    phnum: int = 0
    shentsize: int = 0
    shnum: int = 0
    shstrndx: int = 0

    _FORMAT: ClassVar[struct.Struct] = struct.Struct("<I12sHHIIIIIHHHHHH")
    SIZE: ClassVar[int] = _FORMAT.size

    @classmethod
    def parse(cls, data: bytes) -> "ElfHeader":
        """Read and check the file header at the start of an image."""
        if len(data) < cls.SIZE:
            raise ElfError(f"image too short for ELF header: {len(data)} bytes")
        header = cls(*cls._FORMAT.unpack_from(data))
        if header.magic != ELF_MAGIC:
            raise ElfError(f"bad ELF magic {header.magic:#x}")
        return header

    def pack(self) -> bytes:
        """Encode as stored in the image."""
        if len(self.elf) != 12:
            raise ElfError("ident bytes must be 12 long")
        try:
            return self._FORMAT.pack(
                self.magic, bytes(self.elf), self.type, self.machine, self.version,
                self.entry, self.phoff, self.shoff, self.flags, self.ehsize,
                self.phentsize, self.phnum, self.shentsize, self.shnum, self.shstrndx,
            )
        except struct.error as exc:
            raise ElfError(f"ELF header field out of range: {exc}") from exc

    def program_headers(self, data: bytes) -> list[ProgramHeader]:
        """All program headers of the image, in table order."""
        return [
            ProgramHeader.parse(data, self.phoff + i * ProgramHeader.SIZE)
            for i in range(self.phnum)
        ]