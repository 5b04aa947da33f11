"""ConnectionRegistry 单元测试."""

import random

import pytest

from elasticrelay.connection.exceptions import ConnectionConfigError
from elasticrelay.connection.models import Endpoint
from elasticrelay.connection.tool import ConnectionRegistry


@pytest.fixture
def endpoints() -> list[Endpoint]:
    """创建三个节点."""
    return [Endpoint("es1", 9200), Endpoint("es2", 9200), Endpoint("es3", 9200)]


class TestConnectionRegistryInit:
    """ConnectionRegistry 初始化测试."""

    def test_empty_endpoints_raises_error(self) -> None:
        """测试空节点列表抛出 ConnectionConfigError."""
        with pytest.raises(ConnectionConfigError, match="endpoints 不能为空"):
            ConnectionRegistry([])

    def test_single_mapping_wrapped(self) -> None:
        """测试单个 {"host", "port"} 映射被视为一个节点."""
        registry = ConnectionRegistry({"host": "es1", "port": 9200})
        assert registry.configured == (Endpoint("es1", 9200),)

    def test_mixed_values(self) -> None:
        """测试混合使用 Endpoint、映射和字符串."""
        registry = ConnectionRegistry(
            [Endpoint("es1"), {"host": "es2", "port": 9201}, "es3:9202"]
        )
        assert registry.configured == (
            Endpoint("es1", 9200),
            Endpoint("es2", 9201),
            Endpoint("es3", 9202),
        )
        assert len(registry) == 3


class TestEndpointsOrdering:
    """endpoints() 遍历顺序测试."""

    def test_returns_all_endpoints(self, endpoints) -> None:
        """测试每次返回全部节点."""
        registry = ConnectionRegistry(endpoints)
        for _ in range(20):
            assert sorted(registry.endpoints(), key=lambda e: e.host) == endpoints

    def test_returns_fresh_list(self, endpoints) -> None:
        """测试返回的是新列表，修改它不影响注册表."""
        registry = ConnectionRegistry(endpoints)
        ordering = registry.endpoints()
        ordering.clear()
        assert len(registry.endpoints()) == 3
        assert registry.configured == tuple(endpoints)

    def test_uses_given_rng(self, endpoints) -> None:
        """测试使用注入的随机数生成器，相同种子得到相同顺序."""
        first = ConnectionRegistry(endpoints, rng=random.Random(7)).endpoints()
        second = ConnectionRegistry(endpoints, rng=random.Random(7)).endpoints()
        assert first == second

    def test_first_endpoint_varies(self, endpoints) -> None:
        """测试多次调用时第一个尝试的节点并不总是同一个."""
        registry = ConnectionRegistry(endpoints, rng=random.Random(42))
        first_hosts = {registry.endpoints()[0].host for _ in range(100)}
        assert len(first_hosts) > 1

    def test_single_endpoint(self) -> None:
        """测试只有一个节点时顺序固定."""
        registry = ConnectionRegistry([Endpoint("es1")])
        assert registry.endpoints() == [Endpoint("es1")]
