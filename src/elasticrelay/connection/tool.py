"""连接注册表工具模块.

提供 ConnectionRegistry 类，保存集群中所有可互换的服务节点，
并在每次请求时给出一个随机的遍历顺序。

使用示例:
    from elasticrelay.connection import ConnectionRegistry, Endpoint

    registry = ConnectionRegistry([Endpoint("es1", 9200), Endpoint("es2", 9200)])
    for endpoint in registry.endpoints():
        ...
"""

from __future__ import annotations

import logging
import random
from collections.abc import Iterable
from typing import Any

from .exceptions import ConnectionConfigError
from .models import Endpoint

logger = logging.getLogger(__name__)


class ConnectionRegistry:
    """服务节点注册表.

    节点在构造时确定，之后不再变化。请求失败不会把节点移出注册表，
    每次调用 endpoints() 都会重新随机排序，避免大量客户端共享同一份
    静态节点列表时总是优先打到第一个节点。

    Attributes:
        _endpoints: 按配置顺序保存的节点元组
        _random: 用于打乱顺序的随机数生成器

    Examples:
        >>> registry = ConnectionRegistry([{"host": "es1", "port": 9200}])
        >>> len(registry)
        1
    """

    def __init__(
        self,
        endpoints: Iterable[Any] | dict[str, Any],
        rng: random.Random | None = None,
    ) -> None:
        """初始化节点注册表.

        Args:
            endpoints: 节点列表，元素可以是 Endpoint、{"host", "port"} 映射或
                "host:port" 字符串；单个映射会被视为只有一个节点
            rng: 随机数生成器，默认使用 random 模块的全局实例

        Raises:
            ConnectionConfigError: 当节点列表为空或节点配置不合法时抛出
        """
        if isinstance(endpoints, (dict, str, Endpoint)):
            endpoints = [endpoints]
        self._endpoints: tuple[Endpoint, ...] = tuple(
            Endpoint.from_value(e) for e in endpoints
        )
        if not self._endpoints:
            raise ConnectionConfigError("endpoints 不能为空，请提供至少一个节点")
        self._random = rng or random.Random()
        logger.debug(f"初始化节点注册表: {[f'{e.host}:{e.port}' for e in self._endpoints]}")

    def endpoints(self) -> list[Endpoint]:
        """返回本次请求使用的节点遍历顺序.

        每次调用都返回一个新的随机排列，不会修改注册表本身。

        Returns:
            节点列表（随机顺序）
        """
        ordering = list(self._endpoints)
        self._random.shuffle(ordering)
        return ordering

    @property
    def configured(self) -> tuple[Endpoint, ...]:
        """按配置顺序返回全部节点."""
        return self._endpoints

    def __len__(self) -> int:
        return len(self._endpoints)

    def __repr__(self) -> str:
        return f"ConnectionRegistry({list(self._endpoints)!r})"
