"""客户端配置数据模型定义模块.

提供客户端配置相关的数据模型和函数，包括：
- ClientConfig: 客户端配置（节点、索引、镜像、批量、超时）
- parse_dsn: 解析 ``http://host:port/index/type`` 形式的 DSN
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass, field
from typing import Any
from urllib.parse import urlsplit

from ..connection.exceptions import ConnectionConfigError
from ..connection.models import ConnectionConfig, Endpoint
from ..core.constants import BulkDefaults, ClientDefaults, TransportDefaults
from ..exceptions import ConfigurationError


def _default_servers() -> list[Endpoint]:
    return [Endpoint(ClientDefaults.HOST, ClientDefaults.PORT)]


@dataclass
class ClientConfig:
    """客户端配置模型.

    在启动时构造一次并传入各个组件，不存在进程级的可变默认值。

    Attributes:
        protocol: 请求协议，默认 http
        servers: 节点列表，默认 127.0.0.1:9200；单个 {"host", "port"} 映射会被包装为列表
        index: 默认索引名
        type: 默认文档类型
        mirror_indexing: 是否开启镜像写入，默认 False
        mirror_indexing_suffix: 镜像索引名后缀，默认 ``_mirror``
        bulk_chunk_size: 批量写入每个分块的操作数，0 表示不分块
        connect_timeout: 连接超时时间（毫秒）
        request_timeout: 单次请求超时时间（毫秒）
        connect_retries: 连接超时时对同一节点的重试次数
        retry_backoff: 重试间隔（秒）

    Raises:
        ConnectionConfigError: 当节点或超时配置不合法时抛出

    Examples:
        >>> config = ClientConfig(
        ...     servers=[{"host": "es1", "port": 9200}, {"host": "es2", "port": 9200}],
        ...     index="users",
        ...     mirror_indexing=True,
        ... )
    """

    protocol: str = ClientDefaults.PROTOCOL
    servers: list[Endpoint] = field(default_factory=_default_servers)
    index: str | None = ClientDefaults.INDEX
    type: str | None = ClientDefaults.TYPE
    mirror_indexing: bool = ClientDefaults.MIRROR_INDEXING
    mirror_indexing_suffix: str = ClientDefaults.MIRROR_INDEXING_SUFFIX
    bulk_chunk_size: int = BulkDefaults.CHUNK_SIZE
    connect_timeout: int = TransportDefaults.CONNECT_TIMEOUT_MS
    request_timeout: int = TransportDefaults.REQUEST_TIMEOUT_MS
    connect_retries: int = TransportDefaults.CONNECT_RETRIES
    retry_backoff: float = TransportDefaults.RETRY_BACKOFF

    def __post_init__(self) -> None:
        """规范化节点列表并校验配置."""
        servers: Any = self.servers
        if isinstance(servers, (dict, str, Endpoint)):
            servers = [servers]
        self.servers = [Endpoint.from_value(s) for s in servers]
        if not self.servers:
            raise ConnectionConfigError("servers 不能为空，请提供至少一个节点")
        if self.bulk_chunk_size < 0:
            raise ConnectionConfigError(
                f"bulk_chunk_size 必须 >= 0，当前值: {self.bulk_chunk_size}"
            )
        # 提前校验超时配置
        self.connection_config()

    def connection_config(self) -> ConnectionConfig:
        """生成传输层使用的连接配置."""
        return ConnectionConfig(
            protocol=self.protocol,
            connect_timeout=self.connect_timeout,
            request_timeout=self.request_timeout,
            connect_retries=self.connect_retries,
            retry_backoff=self.retry_backoff,
        )

    def merged(self, overrides: dict[str, Any]) -> ClientConfig:
        """返回应用了 overrides 的新配置，原配置不变.

        Raises:
            ConfigurationError: 当 overrides 中包含未知配置项时抛出
        """
        known = {f.name for f in dataclasses.fields(self)}
        unknown = set(overrides) - known
        if unknown:
            raise ConfigurationError(f"未知的配置项: {sorted(unknown)}")
        return dataclasses.replace(self, **overrides)

    @classmethod
    def from_mapping(cls, overrides: dict[str, Any] | None = None) -> ClientConfig:
        """在默认配置之上应用 overrides."""
        return cls().merged(dict(overrides or {}))

    @classmethod
    def from_dsn(cls, dsn: str) -> ClientConfig:
        """从 DSN 创建配置."""
        return cls.from_mapping(parse_dsn(dsn))


def parse_dsn(dsn: str) -> dict[str, Any]:
    """解析 DSN 字符串.

    示例:
        >>> parse_dsn("http://es1:9200/users/doc")
        {'protocol': 'http', 'servers': [{'host': 'es1', 'port': 9200}], 'index': 'users', 'type': 'doc'}

    Args:
        dsn: 形如 ``protocol://host:port/index/type`` 的字符串，index 和 type 可省略

    Returns:
        配置覆盖项字典

    Raises:
        ConfigurationError: 当 DSN 缺少协议或主机时抛出
    """
    parts = urlsplit(dsn.strip())
    try:
        port = parts.port
    except ValueError as e:
        raise ConfigurationError(f"DSN 端口不合法: {dsn}") from e
    if not parts.scheme or not parts.hostname:
        raise ConfigurationError(f"无法解析 DSN，缺少协议或主机: {dsn}")

    config: dict[str, Any] = {
        "protocol": parts.scheme,
        "servers": [{"host": parts.hostname, "port": port or ClientDefaults.PORT}],
    }
    segments = [s for s in parts.path.split("/") if s]
    if segments:
        config["index"] = segments[0]
    if len(segments) > 1:
        config["type"] = segments[1]
    return config
