import pytest

from xvkit.elf import (
    ELF_MAGIC,
    ELF_PROG_FLAG_EXEC,
    ELF_PROG_FLAG_READ,
    ELF_PROG_LOAD,
    ElfError,
    ElfHeader,
    ProgramHeader,
)


def _image():
    phs = [
        ProgramHeader(type=ELF_PROG_LOAD, off=0x1000, vaddr=0, filesz=100, memsz=200,
                      flags=ELF_PROG_FLAG_EXEC | ELF_PROG_FLAG_READ, align=4096),
        ProgramHeader(type=0x6474E551, flags=ELF_PROG_FLAG_READ),
    ]
    header = ElfHeader(type=2, machine=3, version=1, entry=0x20, phoff=ElfHeader.SIZE,
                       ehsize=ElfHeader.SIZE, phentsize=ProgramHeader.SIZE, phnum=len(phs))
    data = header.pack() + b"".join(ph.pack() for ph in phs)
    return header, phs, data


def test_header_sizes():
    assert len(ElfHeader().pack()) == 52
    assert len(ProgramHeader().pack()) == 32


def test_magic_bytes():
    data = ElfHeader().pack()
    assert data[:4] == b"\x7fELF"
    assert int.from_bytes(data[:4], "little") == ELF_MAGIC


def test_header_round_trip():
    header, _, data = _image()
    assert ElfHeader.parse(data) == header


def test_program_headers():
    header, phs, data = _image()
    parsed = header.program_headers(data)
    assert parsed == phs
    assert [ph.is_loadable() for ph in parsed] == [True, False]


def test_bad_magic():
    data = bytearray(ElfHeader().pack())
    data[0] = 0
    with pytest.raises(ElfError):
        ElfHeader.parse(bytes(data))


def test_short_header():
    with pytest.raises(ElfError):
        ElfHeader.parse(ElfHeader().pack()[:-1])


def test_truncated_program_table():
    header, _, data = _image()
    with pytest.raises(ElfError):
        header.program_headers(data[:-1])


def test_program_header_parse_at_offset():
    ph = ProgramHeader(type=ELF_PROG_LOAD, vaddr=0x1000, memsz=0x2000)
    data = b"\x00" * 5 + ph.pack()
    assert ProgramHeader.parse(data, 5) == ph


def test_pack_rejects_bad_ident():
    with pytest.raises(ElfError):
        ElfHeader(elf=b"short").pack()