import json
import tempfile
import unittest
from pathlib import Path

from solders.pubkey import Pubkey

from fakes import FakeRpcClient, make_elf, program_data_account, upgradeable_program
from ledgerfork.accounts import AccountCache, AccountRecord
from ledgerfork.errors import InvalidFixture
from ledgerfork.fixture import load_fixture, read_fixture_metadata, save_fixture
from ledgerfork.programs import LOADER_UPGRADEABLE
from ledgerfork.store import RpcAccountStore


def _sample_cache() -> AccountCache:
    cache = AccountCache()
    cache.put(
        Pubkey.new_unique(),
        AccountRecord(
            lamports=1_141_440,
            data=bytes(range(256)),
            owner=LOADER_UPGRADEABLE,
            executable=True,
            rent_epoch=2**64 - 1,
        ),
    )
    cache.put(Pubkey.new_unique(), AccountRecord.default())
    return cache


class FixtureTests(unittest.TestCase):
    def test_round_trip_preserves_every_field(self) -> None:
        cache = _sample_cache()
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "nested" / "dir" / "accounts.json"
            save_fixture(cache, path)
            loaded = load_fixture(path)
        self.assertEqual(loaded, cache)

    def test_saved_file_format(self) -> None:
        cache = _sample_cache()
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "accounts.json"
            save_fixture(cache, path, slot=42, rpc_url="http://127.0.0.1:8899")
            text = path.read_text(encoding="utf-8")
        fixture = json.loads(text)
        self.assertIn("\n  ", text)
        self.assertEqual(fixture["version"], 1)
        self.assertEqual(fixture["metadata"]["slot"], 42)
        self.assertEqual(fixture["metadata"]["rpc_url"], "http://127.0.0.1:8899")
        self.assertTrue(fixture["metadata"]["timestamp"].isdigit())
        self.assertEqual(list(fixture["accounts"]), sorted(str(key) for key in cache))
        entry = next(iter(fixture["accounts"].values()))
        self.assertEqual(set(entry), {"lamports", "data", "owner", "executable", "rent_epoch"})

    def test_metadata_omits_unset_fields(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "accounts.json"
            save_fixture(AccountCache(), path)
            raw = json.loads(path.read_text())
            metadata = read_fixture_metadata(path)
        self.assertEqual(set(raw["metadata"]), {"timestamp"})
        self.assertIsNone(metadata.slot)
        self.assertIsNone(metadata.rpc_url)

    def _write(self, td: str, fixture: object) -> Path:
        path = Path(td) / "fixture.json"
        path.write_text(json.dumps(fixture))
        return path

    def test_rejects_unsupported_version(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            path = self._write(td, {"version": 2, "accounts": {}})
            with self.assertRaisesRegex(InvalidFixture, "Unsupported fixture version: 2"):
                load_fixture(path)

    def test_rejects_invalid_owner(self) -> None:
        entry = {"lamports": 1, "data": "", "owner": "not-a-pubkey!", "executable": False, "rent_epoch": 0}
        with tempfile.TemporaryDirectory() as td:
            path = self._write(td, {"version": 1, "accounts": {str(Pubkey.new_unique()): entry}})
            with self.assertRaisesRegex(InvalidFixture, "owner"):
                load_fixture(path)

    def test_rejects_invalid_account_key(self) -> None:
        entry = {"lamports": 1, "data": "", "owner": str(Pubkey.default()), "executable": False, "rent_epoch": 0}
        with tempfile.TemporaryDirectory() as td:
            path = self._write(td, {"version": 1, "accounts": {"0OIl": entry}})
            with self.assertRaises(InvalidFixture):
                load_fixture(path)

    def test_rejects_bad_base64_and_json(self) -> None:
        entry = {"lamports": 1, "data": "***", "owner": str(Pubkey.default()), "executable": False, "rent_epoch": 0}
        with tempfile.TemporaryDirectory() as td:
            path = self._write(td, {"version": 1, "accounts": {str(Pubkey.new_unique()): entry}})
            with self.assertRaisesRegex(InvalidFixture, "base64"):
                load_fixture(path)
            path.write_text("{not json")
            with self.assertRaises(InvalidFixture):
                load_fixture(path)

    def test_missing_file(self) -> None:
        with self.assertRaises(FileNotFoundError):
            load_fixture("/nonexistent/fixture.json")

    def test_store_from_fixture_resolves_without_network(self) -> None:
        program = Pubkey.new_unique()
        program_data = Pubkey.new_unique()
        elf = make_elf(64)
        client = FakeRpcClient({program: upgradeable_program(program_data), program_data: program_data_account(elf)})
        with tempfile.TemporaryDirectory() as td:
            path = Path(td) / "fixture.json"
            online = RpcAccountStore(client, rpc_url="http://localhost:8899")
            online.from_pubkeys([program])
            online.fetch_program_data()
            online.save_fixture(path, slot=7)

            offline = RpcAccountStore.from_fixture(path)
            metadata = read_fixture_metadata(path)
        self.assertEqual(offline.cache, online.cache)
        self.assertEqual(metadata.slot, 7)
        self.assertEqual(metadata.rpc_url, "http://localhost:8899")

    def test_store_from_fixture_keeps_source_url_on_resave(self) -> None:
        with tempfile.TemporaryDirectory() as td:
            source = Path(td) / "source.json"
            copy = Path(td) / "copy.json"
            save_fixture(_sample_cache(), source, slot=3, rpc_url="https://api.devnet.solana.com")

            store = RpcAccountStore.from_fixture(source)
            store.save_fixture(copy)
            metadata = read_fixture_metadata(copy)
        self.assertEqual(store.rpc_url, "https://api.devnet.solana.com")
        self.assertEqual(metadata.rpc_url, "https://api.devnet.solana.com")

    def test_load_rejects_malformed_metadata(self) -> None:
        cases = [
            ("oops", "metadata must be an object"),
            ({"slot": "x"}, "metadata.slot"),
            ({"slot": True}, "metadata.slot"),
            ({"rpc_url": 8899}, "metadata.rpc_url"),
        ]
        with tempfile.TemporaryDirectory() as td:
            for metadata, message in cases:
                with self.subTest(metadata=metadata):
                    path = self._write(td, {"version": 1, "metadata": metadata, "accounts": {}})
                    with self.assertRaisesRegex(InvalidFixture, message):
                        load_fixture(path)
                    with self.assertRaisesRegex(InvalidFixture, message):
                        read_fixture_metadata(path)


if __name__ == "__main__":
    unittest.main()
