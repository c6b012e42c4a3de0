"""CLI entrypoint for ledgerfork."""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import replace
from pathlib import Path

from solders.pubkey import Pubkey

from .config import SessionConfig, load_config, parse_commitment, resolve_rpc_url
from .constants import CLUSTER_URLS
from .errors import LedgerForkError
from .fixture import read_fixture_metadata
from .programs import LoaderVersion, classify_loader
from .registry import ProgramDirectory
from .store import RpcAccountStore


def _parse_pubkey_arg(text: str) -> Pubkey:
    try:
        return Pubkey.from_string(text)
    except ValueError as exc:
        raise ValueError(f"Invalid pubkey {text!r}: {exc}") from exc


def _session_config(args: argparse.Namespace) -> SessionConfig:
    session = load_config(args.config) if args.config else SessionConfig()
    store = session.store
    if args.commitment:
        store = replace(store, commitment=parse_commitment(args.commitment))
    if args.allow_missing:
        store = replace(store, allow_missing_accounts=True)
    rpc_url = resolve_rpc_url(args.rpc_url, args.cluster) or session.rpc_url
    return SessionConfig(rpc_url=rpc_url, store=store)


def _cmd_fetch(args: argparse.Namespace) -> int:
    session = _session_config(args)
    if not session.rpc_url:
        raise ValueError("RPC URL required (use --rpc-url, --cluster or a config file)")
    pubkeys = [_parse_pubkey_arg(text) for text in args.pubkeys]

    store = RpcAccountStore.from_url(session.rpc_url, session.store)
    store.from_pubkeys(pubkeys)
    if args.with_programs:
        extra = store.fetch_program_data()
        if extra:
            print(f"Fetched {len(extra)} program data accounts")

    slot = store.get_height() if args.slot else None
    store.save_fixture(args.out, slot=slot)
    print(f"Wrote {len(store.cache)} accounts to {args.out}")
    return 0


def _cmd_inspect(args: argparse.Namespace) -> int:
    metadata = read_fixture_metadata(args.fixture)
    store = RpcAccountStore.from_fixture(args.fixture)

    print(f"Fixture: {args.fixture}")
    if metadata is not None:
        if metadata.slot is not None:
            print(f"  slot: {metadata.slot}")
        if metadata.timestamp is not None:
            print(f"  timestamp: {metadata.timestamp}")
        if metadata.rpc_url is not None:
            print(f"  rpc_url: {metadata.rpc_url}")
    if not len(store.cache):
        print("  accounts: <none>")
        return 0
    print(f"  accounts ({len(store.cache)}):")
    for pubkey, record in store.cache.items():
        line = f"    {pubkey} lamports={record.lamports} data_len={len(record.data)} owner={record.owner}"
        if record.executable:
            loader = classify_loader(record)
            line += " executable"
            if loader is not LoaderVersion.UNKNOWN:
                line += f" loader={loader.value}"
        print(line)
    return 0


def _cmd_dump_programs(args: argparse.Namespace) -> int:
    store = RpcAccountStore.from_fixture(args.fixture)
    store.config = replace(store.config, validate_programs=not args.no_validate)
    registry = ProgramDirectory(Path(args.out_dir))
    registered = store.resolve_programs(registry)
    if not registered:
        print("No programs found")
        return 0
    for _address, path, owner in registry.written:
        print(f"Wrote {path} (owner {owner})")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog=os.path.basename(sys.argv[0]))
    parser.add_argument("-v", "--verbose", action="count", default=0, help="Increase log verbosity")
    sub = parser.add_subparsers(dest="cmd", required=True)

    p_fetch = sub.add_parser("fetch", help="Fetch accounts over RPC and write a fixture")
    p_fetch.add_argument("pubkeys", nargs="+", help="Account addresses (base58)")
    p_fetch.add_argument("--out", required=True, help="Fixture output path")
    p_fetch.add_argument("--rpc-url", help="RPC endpoint URL")
    p_fetch.add_argument("--cluster", choices=sorted(CLUSTER_URLS), help="Named cluster")
    p_fetch.add_argument("--config", help="Path to ledgerfork.toml")
    p_fetch.add_argument("--commitment", choices=["processed", "confirmed", "finalized"])
    p_fetch.add_argument(
        "--allow-missing",
        action="store_true",
        help="Store missing accounts as empty accounts instead of failing",
    )
    p_fetch.add_argument(
        "--with-programs",
        action="store_true",
        help="Also fetch program data accounts of upgradeable programs",
    )
    p_fetch.add_argument("--slot", action="store_true", help="Record the current slot in the fixture")
    p_fetch.set_defaults(func=_cmd_fetch)

    p_inspect = sub.add_parser("inspect", help="Summarize a fixture")
    p_inspect.add_argument("fixture", help="Path to fixture JSON")
    p_inspect.set_defaults(func=_cmd_inspect)

    p_dump = sub.add_parser("dump-programs", help="Extract program ELFs from a fixture")
    p_dump.add_argument("fixture", help="Path to fixture JSON")
    p_dump.add_argument("--out-dir", required=True, help="Directory for <address>.so files")
    p_dump.add_argument("--no-validate", action="store_true", help="Skip ELF header checks")
    p_dump.set_defaults(func=_cmd_dump_programs)

    args = parser.parse_args(argv)
    level = logging.DEBUG if args.verbose > 1 else logging.INFO if args.verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    try:
        return args.func(args)
    except FileNotFoundError as exc:
        print(str(exc))
        return 1
    except (LedgerForkError, ValueError) as exc:
        print(str(exc))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
