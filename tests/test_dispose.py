import unittest
from unittest.mock import MagicMock

import pytest

from featurebind import ServiceCollection


class Connection:
    def __init__(self) -> None:
        self.close = MagicMock()


class Pool:
    def __init__(self, connection: Connection) -> None:
        self.connection = connection
        self.dispose = MagicMock()


class TestProviderDispose(unittest.TestCase):
    services: ServiceCollection

    def setUp(self):
        self.services = ServiceCollection()

    def test_dispose_closes_cached_singletons_once(self):
        provider = self.services.add_singleton(Connection).build_provider()
        conn = provider.resolve(Connection)

        provider.dispose()
        provider.dispose()

        conn.close.assert_called_once_with()

    def test_dispose_uses_dispose_method_when_there_is_no_close(self):
        provider = self.services.add_singleton(Connection).add_singleton(Pool).build_provider()
        pool = provider.resolve(Pool)

        provider.dispose()

        pool.dispose.assert_called_once_with()
        pool.connection.close.assert_called_once_with()

    def test_dispose_releases_in_reverse_construction_order(self):
        order = []
        provider = self.services.add_singleton(Connection).add_singleton(Pool).build_provider()
        pool = provider.resolve(Pool)
        pool.dispose.side_effect = lambda: order.append("pool")
        pool.connection.close.side_effect = lambda: order.append("connection")

        provider.dispose()

        assert order == ["pool", "connection"]

    def test_dispose_ignores_transients_and_unresolved_singletons(self):
        self.services.add_transient(Connection)
        self.services.add_singleton(Pool, factory=lambda _: pytest.fail("never resolved"))
        provider = self.services.build_provider()
        conn = provider.resolve(Connection)

        provider.dispose()

        conn.close.assert_not_called()

    def test_resolve_after_dispose_builds_new_singleton(self):
        provider = self.services.add_singleton(Connection).build_provider()
        before = provider.resolve(Connection)

        provider.dispose()
        after = provider.resolve(Connection)

        assert after is not before
        after.close.assert_not_called()

    def test_instances_without_release_method_are_skipped(self):
        class Plain: ...

        provider = self.services.add_singleton(Plain).add_singleton(Connection).build_provider()
        provider.resolve(Plain)
        conn = provider.resolve(Connection)

        provider.dispose()

        conn.close.assert_called_once_with()

    def test_shared_instance_is_released_once(self):
        conn = Connection()
        self.services.add_instance(Connection, conn)
        self.services.add_singleton("conn", factory=lambda p: p.resolve(Connection))
        provider = self.services.build_provider()
        provider.resolve("conn")

        provider.dispose()

        conn.close.assert_called_once_with()

    def test_every_instance_is_released_even_when_one_fails(self):
        provider = self.services.add_singleton(Connection).add_singleton(Pool).build_provider()
        pool = provider.resolve(Pool)
        pool.dispose.side_effect = RuntimeError("pool release failed")

        with pytest.raises(RuntimeError, match="pool release failed"):
            provider.dispose()

        pool.connection.close.assert_called_once_with()
        # cache is cleared regardless
        assert provider.resolve(Pool) is not pool

    def test_context_manager_disposes_on_exit(self):
        with self.services.add_singleton(Connection).build_provider() as provider:
            conn = provider.resolve(Connection)
            conn.close.assert_not_called()

        conn.close.assert_called_once_with()
