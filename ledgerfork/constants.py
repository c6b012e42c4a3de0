"""Ledgerfork constants and well-known addresses."""

# Loader program IDs.
BPF_LOADER_V2_ID = "BPFLoader2111111111111111111111111111111111"
BPF_LOADER_UPGRADEABLE_ID = "BPFLoaderUpgradeab1e11111111111111111111111"

# Upgradeable loader layouts (bincode, little endian).
# Program account: u32 tag + 32-byte programdata address.
PROGRAM_DATA_POINTER_OFFSET = 4
PROGRAM_DATA_POINTER_END = PROGRAM_DATA_POINTER_OFFSET + 32
# ProgramData account: u32 tag + u64 slot + Option<Pubkey> authority (1 + 32).
PROGRAM_DATA_HEADER_SIZE = 45

# ELF header checks.
ELF_MAGIC = b"\x7fELF"
ELF_CLASS_OFFSET = 4
ELF_CLASS_32 = 1
ELF_CLASS_64 = 2
ALLOWED_ELF_CLASSES = {ELF_CLASS_32, ELF_CLASS_64}
ELF_MIN_HEADER_SIZE = 52

FIXTURE_VERSION = 1

# getMultipleAccounts rejects more than 100 keys per request.
MAX_MULTIPLE_ACCOUNTS = 100

DEFAULT_COMMITMENT = "confirmed"

CLUSTER_URLS: dict[str, str] = {
    "localnet": "http://127.0.0.1:8899",
    "devnet": "https://api.devnet.solana.com",
    "testnet": "https://api.testnet.solana.com",
    "mainnet": "https://api.mainnet-beta.solana.com",
}
