# xvkit

`xvkit` models the core pieces of a small teaching Unix kernel for 32-bit x86
in plain Python. It uses only the standard library.

## Modules

| Module          | Contents |
|-----------------|----------|
| `xvkit.params`  | Kernel limits (`NPROC`, `NOFILE`, `MAXARG`, ...), memory-layout and trap constants, `OpenFlag`, `FileType`, `SyscallNumber`, the `Stat` record with `pack` / `unpack`, and `v2p` / `p2v` |
| `xvkit.mmu`     | Paging arithmetic (`pdx`, `ptx`, `pgaddr`, `pg_round_up`, `pg_round_down`, `pte_addr`, `pte_flags`) and byte-exact `SegmentDescriptor`, `GateDescriptor` and `TrapFrame` records |
| `xvkit.elf`     | `ElfHeader` and `ProgramHeader`: parse, pack, list program headers; bad images raise `ElfError` |
| `xvkit.strings` | `memcmp`, `memmove`, `strlen`, `strcmp`, `strncmp`, `strncpy`, `safestrcpy`, `atoi`, `strchr` over bytes (or latin-1 strings), treating the first NUL as the end |
| `xvkit.vm`      | `PageAllocator` (simulated physical pages), `PageTable` (two-level x86 page tables) and `setup_kernel_vm` |
| `xvkit.umalloc` | `Heap`, a first-fit free-list allocator that grows through `sbrk` up to a byte limit |
| `xvkit.locks`   | `Cpu` interrupt nesting (`push_cli` / `pop_cli`), `SpinLock` and `SleepLock`; misuse raises `LockError` |
| `xvkit.syscall` | `Process` argument fetching with bounds checks (`BadAddress`) and the `SyscallTable` dispatcher |
| `xvkit.sh`      | The shell's `Tokenizer` and `parse_cmd`, producing `ExecCmd`, `RedirCmd`, `PipeCmd`, `ListCmd`, `BackCmd` |
| `xvkit.wc`      | Line, word and byte counting: `count`, `WordCount` and the `main` command |
| `xvkit.pstat`   | `ProcState`, `ProcInfo` and `format_table` for the ps-style process listing |

## Installing

```
pip install .
```

To run the tests:

```
pip install .[test]
pytest
```

## Counting lines, words and bytes

The package installs one command:

```
xvkit-wc README.md
```

For each file it prints the line, word and byte counts followed by the file
name. With no arguments it reads standard input and prints an empty name. If a
file cannot be opened it prints `wc: cannot open <name>` and stops with exit
status 1.

From Python, `count` takes an iterable of byte chunks; words may run across
chunk boundaries:

```python
from xvkit.wc import count

result = count([b"hello wor", b"ld\nsecond line\n"])
# WordCount(lines=2, words=4, chars=24)
```

## Parsing shell command lines

`parse_cmd` turns a command line into a tree of dataclasses. It understands
pipes (`|`), lists (`;`), background jobs (`&`), parenthesised blocks and the
redirections `<`, `>` and `>>`. Note that `>>` is parsed exactly like `>`: both
produce a `RedirCmd` on descriptor 1 with mode `OpenFlag.WRONLY | OpenFlag.CREATE`.
A command may have at most nine arguments. Malformed lines raise
`ShellSyntaxError`.

```python
from xvkit.sh import PipeCmd, RedirCmd, parse_cmd

tree = parse_cmd("cat README | grep kernel > out")
assert isinstance(tree, PipeCmd)
assert isinstance(tree.right, RedirCmd)
assert tree.right.file == "out"
```

## Address arithmetic

```python
from xvkit.mmu import pdx, ptx, pg_round_up
from xvkit.params import p2v, v2p

va = 0x80105123
pdx(va), ptx(va)              # page-directory and page-table indexes
pg_round_up(0x1001)           # 0x2000
v2p(p2v(0x1000)) == 0x1000    # True
```

## Paging

`PageAllocator(start, end)` hands out zeroed 4096-byte pages from a physical
range; `page(pa)` gives a page's contents. `PageTable` keeps its directory and
tables inside allocator pages and offers `walk`, `map_pages`, `init_user`,
`load_user`, `alloc_user`, `dealloc_user`, `copy` (for a forked child),
`clear_user` (guard pages), `user_to_kernel`, `copy_out` and `free`.
`setup_kernel_vm(allocator, data_addr)` builds a table holding the kernel
mappings. Running out of pages raises `OutOfMemory`; remapping, missing
mappings and other misuse raise `VMError`.

## User heap

```python
from xvkit.umalloc import Heap

heap = Heap(limit=1 << 20)
a = heap.malloc(100)
heap.free(a)
heap.free_blocks()    # [(address, size in 8-byte units), ...]
```

`malloc` raises `MemoryError` when the heap cannot grow past its limit, and
`free` raises `ValueError` for an address that was not allocated.

## System calls

A `Process` holds its memory as a `bytearray` starting at address 0 and a
`TrapFrame`. `arg_int`, `arg_ptr` and `arg_str` read arguments from the user
stack at `tf.esp`, raising `BadAddress` when they fall outside the process.
`SyscallTable.register` installs a handler for a call number, and `dispatch`
runs the call named in `tf.eax`, storing the result back in `tf.eax`. An
unknown number is reported on the console stream (standard error by default)
and, like a handler raising `BadAddress`, yields -1.

## What this package does not do

It does not boot or run anything. There is no scheduler, no file system, no
disk or console driver and no process creation: `parse_cmd` builds a command
tree but nothing executes it, and `SyscallTable` only dispatches to handlers
you register yourself.