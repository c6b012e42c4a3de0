"""Execution registry interface and a directory-backed implementation."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import List, Optional, Protocol, Tuple

from solders.pubkey import Pubkey

logger = logging.getLogger(__name__)


class ExecutionRegistry(Protocol):
    def register_program(self, address: Pubkey, bytecode: bytes, owner: Pubkey) -> None:
        ...

    def advance_height(self, height: int) -> None:
        ...


class ProgramDirectory:
    """Writes each registered program to ``<out_dir>/<address>.so``.

    The layout matches what ``solana program dump`` produces, so the files
    can be passed to ``solana-test-validator --bpf-program``.
    """

    def __init__(self, out_dir: str | Path) -> None:
        self.out_dir = Path(out_dir)
        self.written: List[Tuple[Pubkey, Path, Pubkey]] = []
        self.height: Optional[int] = None

    def register_program(self, address: Pubkey, bytecode: bytes, owner: Pubkey) -> None:
        self.out_dir.mkdir(parents=True, exist_ok=True)
        path = self.out_dir / f"{address}.so"
        path.write_bytes(bytecode)
        self.written.append((address, path, owner))
        logger.info("Wrote %s (%d bytes)", path, len(bytecode))

    def advance_height(self, height: int) -> None:
        if height < 0:
            raise ValueError("height must be >= 0")
        self.height = height
