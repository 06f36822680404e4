"""Models of a small x86 teaching kernel: paging, locks, system call dispatch, a user heap, ELF headers, a shell parser and wc."""

__version__ = "0.1.0"