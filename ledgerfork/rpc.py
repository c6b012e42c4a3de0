"""JSON-RPC transport for account and slot queries."""

from __future__ import annotations

import base64
import binascii
import http.client
import json
import logging
import urllib.error
import urllib.request
from typing import Any, List, Optional, Protocol, Sequence

from solders.pubkey import Pubkey

from .accounts import AccountRecord
from .config import Commitment
from .constants import MAX_MULTIPLE_ACCOUNTS
from .errors import TransportError

logger = logging.getLogger(__name__)


class RpcClient(Protocol):
    def get_accounts(self, addresses: Sequence[Pubkey]) -> List[Optional[AccountRecord]]:
        """Return one entry per address, ``None`` for accounts that do not exist."""
        ...

    def get_height(self) -> int:
        ...


def _decode_account(value: Any) -> AccountRecord:
    if not isinstance(value, dict):
        raise TransportError(f"Unexpected account format: {value!r}")
    data = value.get("data")
    if isinstance(data, list) and data:
        b64 = data[0]
    elif isinstance(data, str):
        b64 = data
    else:
        raise TransportError("Unexpected account data format")
    executable = value.get("executable")
    if not isinstance(executable, bool):
        raise TransportError(f"Unexpected executable flag: {executable!r}")
    try:
        raw = base64.b64decode(b64, validate=True)
        owner = Pubkey.from_string(value["owner"])
        return AccountRecord(
            lamports=int(value["lamports"]),
            data=raw,
            owner=owner,
            executable=executable,
            rent_epoch=int(value.get("rentEpoch", 0)),
        )
    except (KeyError, TypeError, ValueError, binascii.Error) as exc:
        raise TransportError(f"Unable to decode account: {exc}") from exc


class JsonRpcClient:
    """Minimal client for ``getMultipleAccounts`` and ``getSlot``.

    Failures surface as ``TransportError`` on the first attempt; retries are
    left to the caller.
    """

    def __init__(
        self,
        url: str,
        commitment: Commitment = Commitment.CONFIRMED,
        timeout: float = 30.0,
    ) -> None:
        self.url = url
        self.commitment = commitment
        self.timeout = timeout

    def request(self, method: str, params: list) -> Any:
        payload = json.dumps({"jsonrpc": "2.0", "id": 1, "method": method, "params": params}).encode()
        req = urllib.request.Request(self.url, data=payload, headers={"Content-Type": "application/json"})
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                body = json.loads(resp.read().decode())
        except urllib.error.HTTPError as exc:
            raise TransportError(f"RPC HTTP error {exc.code}: {exc.reason}") from exc
        except urllib.error.URLError as exc:
            raise TransportError(f"RPC transport error: {exc.reason}") from exc
        except (OSError, http.client.HTTPException, UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise TransportError(f"RPC transport error: {exc}") from exc
        if not isinstance(body, dict):
            raise TransportError(f"Unexpected RPC response: {body!r}")
        if "error" in body:
            raise TransportError(f"RPC error: {body['error']}")
        return body.get("result")

    def get_accounts(self, addresses: Sequence[Pubkey]) -> List[Optional[AccountRecord]]:
        out: List[Optional[AccountRecord]] = []
        keys = [str(address) for address in addresses]
        opts = {"encoding": "base64", "commitment": self.commitment.value}
        for start in range(0, len(keys), MAX_MULTIPLE_ACCOUNTS):
            chunk = keys[start:start + MAX_MULTIPLE_ACCOUNTS]
            logger.debug("getMultipleAccounts: %d keys", len(chunk))
            result = self.request("getMultipleAccounts", [chunk, opts])
            values = result.get("value") if isinstance(result, dict) else None
            if not isinstance(values, list) or len(values) != len(chunk):
                raise TransportError("getMultipleAccounts returned an unexpected result")
            for value in values:
                out.append(None if value is None else _decode_account(value))
        return out

    def get_height(self) -> int:
        result = self.request("getSlot", [{"commitment": self.commitment.value}])
        if not isinstance(result, int):
            raise TransportError(f"getSlot returned an unexpected result: {result!r}")
        return result
