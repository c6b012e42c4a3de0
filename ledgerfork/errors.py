"""Error types raised while fetching and resolving accounts."""

from __future__ import annotations

from solders.pubkey import Pubkey


class LedgerForkError(Exception):
    """Base class for all ledgerfork failures."""


class TransportError(LedgerForkError):
    """Raised when the RPC collaborator fails. Never retried internally."""


class AccountNotFound(LedgerForkError):
    def __init__(self, address: Pubkey) -> None:
        super().__init__(f"Account not found: {address}")
        self.address = address


class MalformedProgram(LedgerForkError):
    """Raised when a program account's embedded pointer cannot be read."""

    def __init__(self, address: Pubkey, reason: str) -> None:
        super().__init__(f"Malformed program {address}: {reason}")
        self.address = address
        self.reason = reason


class InvalidProgramData(LedgerForkError):
    """Raised when the bytecode backing a program is missing or unusable."""

    def __init__(self, address: Pubkey, reason: str) -> None:
        super().__init__(f"Invalid program data {address}: {reason}")
        self.address = address
        self.reason = reason


class InvalidFixture(LedgerForkError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid fixture format: {reason}")
        self.reason = reason
