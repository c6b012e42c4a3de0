"""Session configuration loading."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from .constants import CLUSTER_URLS, DEFAULT_COMMITMENT


class Commitment(str, Enum):
    PROCESSED = "processed"
    CONFIRMED = "confirmed"
    FINALIZED = "finalized"


@dataclass(frozen=True)
class StoreConfig:
    commitment: Commitment = Commitment.CONFIRMED
    allow_missing_accounts: bool = False
    validate_programs: bool = True


@dataclass(frozen=True)
class SessionConfig:
    rpc_url: Optional[str] = None
    store: StoreConfig = field(default_factory=StoreConfig)


def _load_toml(path: Path) -> Dict[str, Any]:
    try:
        import tomllib  # Python 3.11+
    except ImportError:  # pragma: no cover
        import tomli as tomllib  # type: ignore
    return tomllib.loads(path.read_text())


def parse_commitment(raw: Any) -> Commitment:
    if isinstance(raw, Commitment):
        return raw
    if not isinstance(raw, str):
        raise ValueError("commitment must be a string")
    value = raw.strip().lower()
    try:
        return Commitment(value)
    except ValueError:
        raise ValueError(
            "commitment must be 'processed', 'confirmed' or 'finalized'"
        ) from None


def resolve_rpc_url(rpc_url: Optional[str], cluster: Optional[str]) -> Optional[str]:
    if isinstance(rpc_url, str) and rpc_url.strip():
        return rpc_url.strip()
    if cluster is None:
        return None
    url = CLUSTER_URLS.get(cluster.strip().lower())
    if url is None:
        raise ValueError(f"Unknown cluster: {cluster}")
    return url


def _ensure_bool(table: Dict[str, Any], key: str, default: bool) -> bool:
    value = table.get(key, default)
    if not isinstance(value, bool):
        raise ValueError(f"store.{key} must be a boolean")
    return value


def load_config(path: str | Path) -> SessionConfig:
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    data = _load_toml(path)

    rpc = data.get("rpc", {})
    store = data.get("store", {})
    if not isinstance(rpc, dict):
        raise ValueError("rpc must be a table")
    if not isinstance(store, dict):
        raise ValueError("store must be a table")

    url = rpc.get("url")
    if url is not None and not isinstance(url, str):
        raise ValueError("rpc.url must be a string")
    cluster = rpc.get("cluster")
    if cluster is not None and not isinstance(cluster, str):
        raise ValueError("rpc.cluster must be a string")

    return SessionConfig(
        rpc_url=resolve_rpc_url(url, cluster),
        store=StoreConfig(
            commitment=parse_commitment(rpc.get("commitment", DEFAULT_COMMITMENT)),
            allow_missing_accounts=_ensure_bool(store, "allow_missing_accounts", False),
            validate_programs=_ensure_bool(store, "validate_programs", True),
        ),
    )
