"""Account fixture files.

A fixture is a JSON snapshot of an account cache, captured once from an RPC
endpoint and replayed offline in tests::

    {
      "version": 1,
      "metadata": {"slot": 250000000, "timestamp": "1700000000", "rpc_url": "..."},
      "accounts": {
        "<base58 address>": {
          "lamports": 1141440,
          "data": "<base64>",
          "owner": "<base58 address>",
          "executable": true,
          "rent_epoch": 18446744073709551615
        }
      }
    }
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from solders.pubkey import Pubkey

from .accounts import U64_MAX, AccountCache, AccountRecord
from .constants import FIXTURE_VERSION
from .errors import InvalidFixture

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FixtureMetadata:
    slot: Optional[int] = None
    timestamp: Optional[str] = None
    rpc_url: Optional[str] = None


def _encode_account(record: AccountRecord) -> Dict[str, Any]:
    return {
        "lamports": record.lamports,
        "data": base64.b64encode(record.data).decode("ascii"),
        "owner": str(record.owner),
        "executable": record.executable,
        "rent_epoch": record.rent_epoch,
    }


def _parse_pubkey(text: Any, what: str) -> Pubkey:
    if not isinstance(text, str):
        raise InvalidFixture(f"{what} must be a string")
    try:
        return Pubkey.from_string(text)
    except ValueError as exc:
        raise InvalidFixture(f"Invalid {what} pubkey {text!r}: {exc}") from exc


def _parse_u64(entry: Dict[str, Any], key: str, pubkey: str) -> int:
    value = entry.get(key)
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidFixture(f"{pubkey}: {key} must be an integer")
    if value < 0 or value > U64_MAX:
        raise InvalidFixture(f"{pubkey}: {key} must be within u64 range")
    return value


def _decode_account(pubkey: str, entry: Any) -> AccountRecord:
    if not isinstance(entry, dict):
        raise InvalidFixture(f"{pubkey}: account must be an object")
    data = entry.get("data")
    if not isinstance(data, str):
        raise InvalidFixture(f"{pubkey}: data must be a base64 string")
    try:
        raw = base64.b64decode(data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise InvalidFixture(f"{pubkey}: invalid base64 data: {exc}") from exc
    executable = entry.get("executable")
    if not isinstance(executable, bool):
        raise InvalidFixture(f"{pubkey}: executable must be a boolean")
    return AccountRecord(
        lamports=_parse_u64(entry, "lamports", pubkey),
        data=raw,
        owner=_parse_pubkey(entry.get("owner"), "owner"),
        executable=executable,
        rent_epoch=_parse_u64(entry, "rent_epoch", pubkey),
    )


def _parse_metadata(raw: Any) -> Optional[FixtureMetadata]:
    if raw is None:
        return None
    if not isinstance(raw, dict):
        raise InvalidFixture("metadata must be an object")
    slot = raw.get("slot")
    if slot is not None and (isinstance(slot, bool) or not isinstance(slot, int)):
        raise InvalidFixture("metadata.slot must be an integer")
    timestamp = raw.get("timestamp")
    rpc_url = raw.get("rpc_url")
    for key, value in (("timestamp", timestamp), ("rpc_url", rpc_url)):
        if value is not None and not isinstance(value, str):
            raise InvalidFixture(f"metadata.{key} must be a string")
    return FixtureMetadata(slot=slot, timestamp=timestamp, rpc_url=rpc_url)


def _read_envelope(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Fixture not found: {path}")
    try:
        fixture = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise InvalidFixture(f"Unable to parse JSON: {exc}") from exc
    if not isinstance(fixture, dict):
        raise InvalidFixture("fixture must be a JSON object")
    version = fixture.get("version")
    if isinstance(version, bool) or not isinstance(version, int):
        raise InvalidFixture("version must be an integer")
    if version != FIXTURE_VERSION:
        raise InvalidFixture(f"Unsupported fixture version: {version}")
    _parse_metadata(fixture.get("metadata"))
    return fixture


def save_fixture(
    cache: AccountCache,
    path: str | Path,
    *,
    slot: Optional[int] = None,
    rpc_url: Optional[str] = None,
) -> None:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)

    accounts = {str(pubkey): _encode_account(record) for pubkey, record in cache.items()}
    metadata: Dict[str, Any] = {}
    if slot is not None:
        metadata["slot"] = slot
    metadata["timestamp"] = str(int(time.time()))
    if rpc_url is not None:
        metadata["rpc_url"] = rpc_url

    fixture = {
        "version": FIXTURE_VERSION,
        "metadata": metadata,
        "accounts": dict(sorted(accounts.items())),
    }
    path.write_text(json.dumps(fixture, indent=2) + "\n", encoding="utf-8")
    logger.info("Saved %d accounts to %s", len(accounts), path)


def load_fixture(path: str | Path) -> AccountCache:
    path = Path(path)
    fixture = _read_envelope(path)
    accounts = fixture.get("accounts")
    if not isinstance(accounts, dict):
        raise InvalidFixture("accounts must be an object")

    cache = AccountCache()
    for pubkey_str, entry in accounts.items():
        pubkey = _parse_pubkey(pubkey_str, "account")
        cache.put(pubkey, _decode_account(pubkey_str, entry))
    logger.info("Loaded %d accounts from %s", len(cache), path)
    return cache


def read_fixture_metadata(path: str | Path) -> Optional[FixtureMetadata]:
    fixture = _read_envelope(Path(path))
    return _parse_metadata(fixture.get("metadata"))
