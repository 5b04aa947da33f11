"""连接注册表数据模型定义模块.

提供连接相关的数据模型，包括：
- Endpoint: 单个服务节点地址
- ConnectionConfig: 连接超时与重试配置
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from ..core.constants import ClientDefaults, TransportDefaults
from .exceptions import ConnectionConfigError


@dataclass(frozen=True)
class Endpoint:
    """服务节点模型.

    集群中任意一个可互换的服务节点，配置后不可变。

    Attributes:
        host: 节点主机名或 IP（必需，不可为空）
        port: 节点端口，默认 9200

    Raises:
        ConnectionConfigError: 当 host 为空或 port 不合法时抛出

    Examples:
        >>> Endpoint("es1.local", 9200)
        Endpoint(host='es1.local', port=9200)
        >>> Endpoint.parse("es2.local:9201").port
        9201
    """

    host: str
    port: int = ClientDefaults.PORT

    def __post_init__(self) -> None:
        """校验节点参数合法性."""
        if not self.host:
            raise ConnectionConfigError("host 不能为空，请提供节点地址")
        try:
            port = int(self.port)
        except (TypeError, ValueError) as e:
            raise ConnectionConfigError(f"port 必须为整数，当前值: {self.port!r}") from e
        if not 0 < port < 65536:
            raise ConnectionConfigError(f"port 必须在 1-65535 之间，当前值: {port}")
        # frozen dataclass 只能通过 object.__setattr__ 规范化字段
        object.__setattr__(self, "port", port)

    @classmethod
    def parse(cls, value: str) -> Endpoint:
        """从 ``host:port`` 形式的字符串创建节点.

        Args:
            value: 节点字符串，端口省略时使用默认端口

        Returns:
            Endpoint 实例
        """
        host, sep, port = value.strip().rpartition(":")
        if not sep:
            return cls(host=port)
        return cls(host=host, port=port)  # type: ignore[arg-type]

    @classmethod
    def from_value(cls, value: Any) -> Endpoint:
        """将配置中的节点描述（Endpoint、映射或字符串）转换为 Endpoint.

        Raises:
            ConnectionConfigError: 当节点描述无法识别时抛出
        """
        if isinstance(value, Endpoint):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, dict):
            if "host" not in value:
                raise ConnectionConfigError(f"节点配置缺少 host 字段: {value}")
            return cls(host=value["host"], port=value.get("port", ClientDefaults.PORT))
        raise ConnectionConfigError(f"无法识别的节点配置: {value!r}")

    def base_url(self, protocol: str) -> str:
        """返回节点的根地址，例如 ``http://127.0.0.1:9200``."""
        return f"{protocol}://{self.host}:{self.port}"


@dataclass
class ConnectionConfig:
    """连接超时与重试配置模型.

    Attributes:
        protocol: 请求协议，默认 http
        connect_timeout: 连接超时时间（毫秒），默认 500
        request_timeout: 单次请求超时时间（毫秒），默认 6000
        connect_retries: 连接超时时对同一节点的重试次数，默认 3
        retry_backoff: 重试前等待的时间（秒），默认 1.0

    Raises:
        ConnectionConfigError: 当参数不合法时抛出

    Examples:
        >>> config = ConnectionConfig(connect_timeout=200, request_timeout=3000)
    """

    protocol: str = ClientDefaults.PROTOCOL
    connect_timeout: int = TransportDefaults.CONNECT_TIMEOUT_MS
    request_timeout: int = TransportDefaults.REQUEST_TIMEOUT_MS
    connect_retries: int = TransportDefaults.CONNECT_RETRIES
    retry_backoff: float = TransportDefaults.RETRY_BACKOFF

    def __post_init__(self) -> None:
        """校验连接配置参数合法性."""
        if self.connect_timeout < 0:
            raise ConnectionConfigError(
                f"connect_timeout 必须 >= 0，当前值: {self.connect_timeout}"
            )
        if self.request_timeout < 0:
            raise ConnectionConfigError(
                f"request_timeout 必须 >= 0，当前值: {self.request_timeout}"
            )
        if self.connect_retries < 0:
            raise ConnectionConfigError(
                f"connect_retries 必须 >= 0，当前值: {self.connect_retries}"
            )
        if self.retry_backoff < 0:
            raise ConnectionConfigError(
                f"retry_backoff 必须 >= 0，当前值: {self.retry_backoff}"
            )
