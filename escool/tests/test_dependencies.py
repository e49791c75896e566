import threading
import time
import unittest
from unittest.mock import MagicMock, patch

from escool import dependencies
from escool.config import Settings
from escool.errors import BackendUnavailable
from escool.memory_db import InMemoryDbClient


def _settings(**overrides) -> Settings:
    fields = {
        "aws_access_key_id": "AKIA",
        "aws_secret_access_key": "secret",
        "seed_demo_data": False,
    }
    fields.update(overrides)
    return Settings(_env_file=None, **fields)


class ResolveDbClientTests(unittest.TestCase):
    def test_missing_credentials_select_memory(self):
        with patch.object(dependencies, "DynamoDbClient") as dynamo:
            client = dependencies.resolve_db_client(
                _settings(aws_access_key_id=None, aws_secret_access_key=None)
            )
        self.assertIsInstance(client, InMemoryDbClient)
        dynamo.from_settings.assert_not_called()

    def test_one_missing_credential_selects_memory(self):
        with patch.object(dependencies, "DynamoDbClient") as dynamo:
            client = dependencies.resolve_db_client(
                _settings(aws_secret_access_key=None)
            )
        self.assertIsInstance(client, InMemoryDbClient)
        dynamo.from_settings.assert_not_called()

    def test_forced_memory_skips_probe(self):
        with patch.object(dependencies, "DynamoDbClient") as dynamo:
            client = dependencies.resolve_db_client(
                _settings(use_in_memory_backends=True)
            )
        self.assertIsInstance(client, InMemoryDbClient)
        dynamo.from_settings.assert_not_called()

    def test_successful_probe_selects_dynamo(self):
        durable = MagicMock()
        with patch.object(dependencies, "DynamoDbClient") as dynamo:
            dynamo.from_settings.return_value = durable
            client = dependencies.resolve_db_client(_settings())
        self.assertIs(client, durable)
        durable.ping.assert_called_once_with()

    def test_failed_probe_falls_back_to_memory(self):
        durable = MagicMock()
        durable.ping.side_effect = BackendUnavailable("timed out")
        with patch.object(dependencies, "DynamoDbClient") as dynamo:
            dynamo.from_settings.return_value = durable
            with self.assertLogs("escool.dependencies", level="ERROR") as logs:
                client = dependencies.resolve_db_client(_settings())
        self.assertIsInstance(client, InMemoryDbClient)
        self.assertIn("falling back to in-memory storage", logs.output[0])

    def test_client_construction_error_falls_back_to_memory(self):
        with patch.object(dependencies, "DynamoDbClient") as dynamo:
            dynamo.from_settings.side_effect = ValueError("bad region")
            with self.assertLogs("escool.dependencies", level="ERROR"):
                client = dependencies.resolve_db_client(_settings())
        self.assertIsInstance(client, InMemoryDbClient)

    def test_seed_flag_is_honoured(self):
        seeded = dependencies.resolve_db_client(
            _settings(use_in_memory_backends=True, seed_demo_data=True)
        )
        empty = dependencies.resolve_db_client(
            _settings(use_in_memory_backends=True, seed_demo_data=False)
        )
        self.assertTrue(seeded.list_projects())
        self.assertEqual(empty.list_projects(), [])


class GetDbClientTests(unittest.TestCase):
    def setUp(self):
        dependencies.reset_db_client()
        self.addCleanup(dependencies.reset_db_client)

    def test_resolution_is_memoized(self):
        with patch.object(
            dependencies, "get_settings", return_value=_settings(aws_access_key_id=None)
        ) as get_settings:
            first = dependencies.get_db_client()
            second = dependencies.get_db_client()
        self.assertIs(first, second)
        get_settings.assert_called_once_with()

    def test_probe_runs_once(self):
        durable = MagicMock()
        with patch.object(dependencies, "get_settings", return_value=_settings()):
            with patch.object(dependencies, "DynamoDbClient") as dynamo:
                dynamo.from_settings.return_value = durable
                for _ in range(3):
                    self.assertIs(dependencies.get_db_client(), durable)
        durable.ping.assert_called_once_with()

    def test_concurrent_first_use_resolves_once(self):
        calls = []
        sentinel = InMemoryDbClient(seed=False)

        def slow_resolve(settings=None):
            calls.append(1)
            time.sleep(0.05)
            return sentinel

        results = []
        with patch.object(dependencies, "resolve_db_client", side_effect=slow_resolve):
            threads = [
                threading.Thread(target=lambda: results.append(dependencies.get_db_client()))
                for _ in range(8)
            ]
            for thread in threads:
                thread.start()
            for thread in threads:
                thread.join()

        self.assertEqual(len(calls), 1)
        self.assertEqual(len(results), 8)
        self.assertTrue(all(result is sentinel for result in results))

    def test_is_durable_backend(self):
        with patch.object(
            dependencies, "get_settings", return_value=_settings(aws_access_key_id=None)
        ):
            self.assertFalse(dependencies.is_durable_backend())

    def test_reset_forces_new_resolution(self):
        with patch.object(
            dependencies, "get_settings", return_value=_settings(aws_access_key_id=None)
        ):
            first = dependencies.get_db_client()
            dependencies.reset_db_client()
            second = dependencies.get_db_client()
        self.assertIsNot(first, second)


if __name__ == "__main__":
    unittest.main()
