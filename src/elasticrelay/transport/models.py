"""传输层数据模型定义模块."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from ..connection.models import Endpoint


class TransportErrorKind(Enum):
    """传输层失败类型枚举.

    Attributes:
        UNSUPPORTED_PROTOCOL: 不支持的协议，换下一个节点
        MALFORMED_URL: URL 格式错误，换下一个节点
        DNS_RESOLUTION_FAILED: 域名解析失败，换下一个节点
        PROXY_RESOLUTION_FAILED: 代理解析失败，换下一个节点
        CONNECT_TIMEOUT: 连接超时，对同一节点有限次重试后再换节点
        REQUEST_TIMEOUT: 请求超时，直接换下一个节点
        CONNECTION_REFUSED: 连接被拒绝，换下一个节点
        UNKNOWN: 其他传输错误，换下一个节点
        EXHAUSTED_ENDPOINTS: 所有节点都已尝试失败，本次调用终止
    """

    UNSUPPORTED_PROTOCOL = "unsupported_protocol"
    MALFORMED_URL = "malformed_url"
    DNS_RESOLUTION_FAILED = "dns_resolution_failed"
    PROXY_RESOLUTION_FAILED = "proxy_resolution_failed"
    CONNECT_TIMEOUT = "connect_timeout"
    REQUEST_TIMEOUT = "request_timeout"
    CONNECTION_REFUSED = "connection_refused"
    UNKNOWN = "unknown"
    EXHAUSTED_ENDPOINTS = "exhausted_endpoints"

    @property
    def retry_same_endpoint(self) -> bool:
        """是否允许对同一节点重试（仅连接超时）."""
        return self is TransportErrorKind.CONNECT_TIMEOUT


@dataclass
class TransportResponse:
    """一次成功传输的结果.

    只要收到了 HTTP 响应（无论状态码）即视为传输成功。

    Attributes:
        body: 解码后的 JSON 数据；无法解码时为 {"error": 原始响应, "code": 状态码}
        status: HTTP 状态码
        endpoint: 返回响应的节点
        endpoints_tried: 成功前共尝试过的节点数（包含返回响应的节点）
        attempts: 实际发出的 HTTP 请求次数（包含连接超时重试）
        headers: 响应头
    """

    body: Any
    status: int
    endpoint: Endpoint
    endpoints_tried: int = 1
    attempts: int = 1
    headers: dict[str, str] = field(default_factory=dict)

    @property
    def has_error(self) -> bool:
        """响应体中是否包含应用层 error 字段."""
        return isinstance(self.body, dict) and "error" in self.body
