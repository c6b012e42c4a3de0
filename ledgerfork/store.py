"""Batch account fetching backed by an RPC endpoint.

Example::

    store = RpcAccountStore.from_url("https://api.mainnet-beta.solana.com")
    accounts = store.with_accounts([(payer, payer_account)]).from_instruction(ix)
    store.resolve_programs(registry)
    store.save_fixture("fixtures/swap_accounts.json")

Accounts already in the cache, whether fetched earlier or seeded with
``with_accounts``, are never requested again.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple

from solders.instruction import Instruction
from solders.pubkey import Pubkey

from . import programs
from .accounts import AccountCache, AccountRecord
from .config import StoreConfig
from .errors import AccountNotFound, TransportError
from .fixture import load_fixture, read_fixture_metadata, save_fixture
from .registry import ExecutionRegistry
from .rpc import JsonRpcClient, RpcClient

logger = logging.getLogger(__name__)


def _unique(pubkeys: Iterable[Pubkey]) -> List[Pubkey]:
    return list(dict.fromkeys(pubkeys))


class RpcAccountStore:
    def __init__(
        self,
        client: Optional[RpcClient],
        config: Optional[StoreConfig] = None,
        rpc_url: Optional[str] = None,
    ) -> None:
        self.client = client
        self.config = config or StoreConfig()
        self.rpc_url = rpc_url
        self.cache = AccountCache()

    @classmethod
    def from_url(cls, rpc_url: str, config: Optional[StoreConfig] = None) -> "RpcAccountStore":
        config = config or StoreConfig()
        client = JsonRpcClient(rpc_url, commitment=config.commitment)
        return cls(client, config, rpc_url=rpc_url)

    @classmethod
    def from_fixture(
        cls,
        path: str | Path,
        client: Optional[RpcClient] = None,
        config: Optional[StoreConfig] = None,
    ) -> "RpcAccountStore":
        """Create a store pre-seeded with the accounts of a fixture file.

        The fixture's source URL is kept so a re-saved fixture still records it.
        """
        metadata = read_fixture_metadata(path)
        store = cls(client, config, rpc_url=metadata.rpc_url if metadata else None)
        store.cache = load_fixture(path)
        return store

    def with_accounts(self, accounts: Iterable[Tuple[Pubkey, AccountRecord]]) -> "RpcAccountStore":
        for pubkey, record in accounts:
            self.cache.put(pubkey, record)
        return self

    def _get_accounts(self, pubkeys: Sequence[Pubkey]) -> List[Optional[AccountRecord]]:
        if self.client is None:
            logger.warning("No RPC client configured; treating %d accounts as missing", len(pubkeys))
            return [None] * len(pubkeys)
        try:
            return list(self.client.get_accounts(pubkeys))
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"get_accounts failed: {exc}") from exc

    def fetch(self, pubkeys: Iterable[Pubkey]) -> None:
        """Fetch every address not already cached in a single batch request."""
        missing = [pubkey for pubkey in _unique(pubkeys) if pubkey not in self.cache]
        if not missing:
            logger.debug("All requested accounts cached")
            return

        logger.info("Fetching %d accounts", len(missing))
        results = self._get_accounts(missing)
        if len(results) != len(missing):
            raise TransportError(f"Expected {len(missing)} accounts from RPC, got {len(results)}")

        if not self.config.allow_missing_accounts:
            for pubkey, record in zip(missing, results):
                if record is None:
                    raise AccountNotFound(pubkey)

        for pubkey, record in zip(missing, results):
            self.cache.put(pubkey, record if record is not None else AccountRecord.default())

    def from_pubkeys(self, pubkeys: Iterable[Pubkey]) -> AccountCache:
        self.fetch(pubkeys)
        return self.cache

    def from_instruction(self, instruction: Instruction) -> AccountCache:
        self.fetch(meta.pubkey for meta in instruction.accounts)
        return self.cache

    def from_instructions(self, instructions: Iterable[Instruction]) -> AccountCache:
        """Fetch the union of accounts referenced by ``instructions`` in one batch."""
        pubkeys = _unique(meta.pubkey for ix in instructions for meta in ix.accounts)
        self.fetch(pubkeys)
        return self.cache

    def fetch_program_data(self) -> List[Pubkey]:
        return programs.fetch_program_data(self.cache, self.fetch)

    def resolve_programs(self, registry: ExecutionRegistry) -> List[Pubkey]:
        return programs.resolve_and_register(
            self.cache,
            registry,
            self.fetch,
            validate=self.config.validate_programs,
        )

    def get_height(self) -> int:
        if self.client is None:
            raise TransportError("No RPC client configured")
        try:
            return self.client.get_height()
        except TransportError:
            raise
        except Exception as exc:
            raise TransportError(f"get_height failed: {exc}") from exc

    def sync_height(self, registry: ExecutionRegistry) -> int:
        height = self.get_height()
        registry.advance_height(height)
        return height

    def save_fixture(self, path: str | Path, slot: Optional[int] = None) -> None:
        save_fixture(self.cache, path, slot=slot, rpc_url=self.rpc_url)
