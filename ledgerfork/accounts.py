"""Account records and the per-session account cache."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Tuple

from solders.pubkey import Pubkey

U64_MAX = 2**64 - 1


@dataclass(frozen=True)
class AccountRecord:
    lamports: int
    data: bytes
    owner: Pubkey
    executable: bool
    rent_epoch: int

    @classmethod
    def default(cls) -> "AccountRecord":
        """Zero-valued record used for accounts that do not exist on chain."""
        return cls(
            lamports=0,
            data=b"",
            owner=Pubkey.default(),
            executable=False,
            rent_epoch=0,
        )


class AccountCache:
    """Mapping of address to account record.

    Entries are only ever inserted or replaced whole. Iteration follows
    insertion order so program resolution is deterministic.
    """

    def __init__(self) -> None:
        self._accounts: Dict[Pubkey, AccountRecord] = {}

    def get(self, address: Pubkey) -> Optional[AccountRecord]:
        return self._accounts.get(address)

    def put(self, address: Pubkey, record: AccountRecord) -> None:
        self._accounts[address] = record

    def contains(self, address: Pubkey) -> bool:
        return address in self._accounts

    def items(self) -> Iterator[Tuple[Pubkey, AccountRecord]]:
        return iter(list(self._accounts.items()))

    def keys(self) -> Iterator[Pubkey]:
        return iter(list(self._accounts))

    def __contains__(self, address: object) -> bool:
        return address in self._accounts

    def __iter__(self) -> Iterator[Pubkey]:
        return self.keys()

    def __len__(self) -> int:
        return len(self._accounts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AccountCache):
            return NotImplemented
        return self._accounts == other._accounts

    def __repr__(self) -> str:
        return f"AccountCache({len(self._accounts)} accounts)"
