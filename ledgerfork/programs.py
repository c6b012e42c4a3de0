"""Program loader classification and bytecode resolution.

Programs owned by the v2 loader carry their ELF inline. Programs owned by the
upgradeable loader hold a pointer to a separate ProgramData account whose
data, past a fixed header, is the ELF. Resolution runs in two passes so that
every ProgramData account is in the cache before any bytecode is extracted.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Callable, Iterable, List

from solders.pubkey import Pubkey

from .accounts import AccountCache, AccountRecord
from .constants import (
    BPF_LOADER_UPGRADEABLE_ID,
    BPF_LOADER_V2_ID,
    PROGRAM_DATA_HEADER_SIZE,
    PROGRAM_DATA_POINTER_END,
    PROGRAM_DATA_POINTER_OFFSET,
)
from .errors import AccountNotFound, InvalidProgramData, MalformedProgram
from .registry import ExecutionRegistry
from .validate import ProgramValidationError, validate_program

logger = logging.getLogger(__name__)

LOADER_V2 = Pubkey.from_string(BPF_LOADER_V2_ID)
LOADER_UPGRADEABLE = Pubkey.from_string(BPF_LOADER_UPGRADEABLE_ID)

FetchFn = Callable[[Iterable[Pubkey]], None]


class LoaderVersion(Enum):
    DIRECT = "direct"
    INDIRECT = "indirect"
    UNKNOWN = "unknown"


def classify_loader(record: AccountRecord) -> LoaderVersion:
    if record.owner == LOADER_V2:
        return LoaderVersion.DIRECT
    if record.owner == LOADER_UPGRADEABLE:
        return LoaderVersion.INDIRECT
    return LoaderVersion.UNKNOWN


def read_program_data_pointer(address: Pubkey, record: AccountRecord) -> Pubkey:
    data = record.data
    if len(data) < PROGRAM_DATA_POINTER_END:
        raise MalformedProgram(
            address,
            f"account data is {len(data)} bytes, need {PROGRAM_DATA_POINTER_END} for the program data pointer",
        )
    try:
        return Pubkey.from_bytes(data[PROGRAM_DATA_POINTER_OFFSET:PROGRAM_DATA_POINTER_END])
    except ValueError as exc:
        raise MalformedProgram(address, f"invalid program data pointer: {exc}") from exc


def collect_program_data_pointers(cache: AccountCache) -> List[Pubkey]:
    """Return ProgramData addresses referenced by cached programs but not yet cached."""
    missing: dict[Pubkey, None] = {}
    for address, record in cache.items():
        if not record.executable or classify_loader(record) is not LoaderVersion.INDIRECT:
            continue
        pointer = read_program_data_pointer(address, record)
        if pointer not in cache:
            missing[pointer] = None
    return list(missing)


def fetch_program_data(cache: AccountCache, fetch: FetchFn) -> List[Pubkey]:
    pointers = collect_program_data_pointers(cache)
    if not pointers:
        return []
    logger.info("Fetching %d program data accounts", len(pointers))
    try:
        fetch(pointers)
    except AccountNotFound as exc:
        raise InvalidProgramData(exc.address, "program data account not found") from exc
    return pointers


def extract_bytecode(cache: AccountCache, address: Pubkey, record: AccountRecord) -> bytes:
    version = classify_loader(record)
    if version is LoaderVersion.DIRECT:
        return record.data
    if version is not LoaderVersion.INDIRECT:
        raise ValueError(f"{address} is not owned by a known loader")
    pointer = read_program_data_pointer(address, record)
    program_data = cache.get(pointer)
    if program_data is None:
        raise InvalidProgramData(pointer, f"program data account for {address} is not available")
    if len(program_data.data) <= PROGRAM_DATA_HEADER_SIZE:
        raise InvalidProgramData(
            pointer,
            f"program data is {len(program_data.data)} bytes, header alone is {PROGRAM_DATA_HEADER_SIZE}",
        )
    return program_data.data[PROGRAM_DATA_HEADER_SIZE:]


def resolve_and_register(
    cache: AccountCache,
    registry: ExecutionRegistry,
    fetch: FetchFn,
    validate: bool = True,
) -> List[Pubkey]:
    """Load every cached program into ``registry``.

    Returns the registered program addresses in cache order.
    """
    fetch_program_data(cache, fetch)

    registered: List[Pubkey] = []
    for address, record in cache.items():
        if not record.executable:
            continue
        if classify_loader(record) is LoaderVersion.UNKNOWN:
            logger.debug("Skipping %s: unsupported owner %s", address, record.owner)
            continue
        bytecode = extract_bytecode(cache, address, record)
        if validate:
            try:
                validate_program(bytecode)
            except ProgramValidationError as exc:
                raise InvalidProgramData(address, str(exc)) from exc
        registry.register_program(address, bytecode, record.owner)
        logger.info("Registered program %s (%d bytes)", address, len(bytecode))
        registered.append(address)
    return registered
