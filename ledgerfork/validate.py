"""Structural checks on program bytecode before it is registered."""

from __future__ import annotations

from .constants import (
    ALLOWED_ELF_CLASSES,
    ELF_CLASS_OFFSET,
    ELF_MAGIC,
    ELF_MIN_HEADER_SIZE,
)


class ProgramValidationError(ValueError):
    """Raised when bytecode is not a loadable ELF image."""


def validate_program(data: bytes) -> None:
    if len(data) < ELF_MIN_HEADER_SIZE:
        raise ProgramValidationError(
            f"ELF too small: {len(data)} bytes (minimum {ELF_MIN_HEADER_SIZE})"
        )
    if data[: len(ELF_MAGIC)] != ELF_MAGIC:
        raise ProgramValidationError("Invalid ELF magic")
    elf_class = data[ELF_CLASS_OFFSET]
    if elf_class not in ALLOWED_ELF_CLASSES:
        raise ProgramValidationError(f"Invalid ELF class: {elf_class}")
