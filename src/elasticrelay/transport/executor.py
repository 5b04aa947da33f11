"""带故障转移的请求执行器.

RequestExecutor 按随机顺序遍历注册表中的节点发送 HTTP 请求，对底层传输
失败进行分类，并决定是重试当前节点、换下一个节点还是放弃本次调用。
"""

from __future__ import annotations

import logging
import socket
import time
from typing import Any

import httpx
from elasticsearch.exceptions import SerializationError
from elasticsearch.serializer import JsonSerializer

from ..connection.models import ConnectionConfig, Endpoint
from ..connection.tool import ConnectionRegistry
from .exceptions import ExhaustedEndpointsError, TransportError
from .models import TransportErrorKind, TransportResponse

logger = logging.getLogger(__name__)

JSON_CONTENT_TYPE = "application/json"

# 域名解析失败时常见的底层错误信息
_DNS_ERROR_HINTS = (
    "name or service not known",
    "nodename nor servname",
    "temporary failure in name resolution",
    "getaddrinfo failed",
    "no address associated",
)


def _exception_chain(exc: BaseException) -> list[BaseException]:
    """返回异常及其 __cause__/__context__ 链."""
    chain: list[BaseException] = []
    current: BaseException | None = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def classify_error(exc: Exception) -> TransportErrorKind:
    """将 httpx 抛出的底层异常归类为 TransportErrorKind.

    Args:
        exc: httpx 抛出的异常

    Returns:
        失败类型
    """
    if isinstance(exc, httpx.UnsupportedProtocol):
        return TransportErrorKind.UNSUPPORTED_PROTOCOL
    if isinstance(exc, httpx.InvalidURL):
        return TransportErrorKind.MALFORMED_URL
    if isinstance(exc, httpx.ProxyError):
        return TransportErrorKind.PROXY_RESOLUTION_FAILED
    if isinstance(exc, httpx.ConnectTimeout):
        return TransportErrorKind.CONNECT_TIMEOUT
    if isinstance(exc, httpx.TimeoutException):
        return TransportErrorKind.REQUEST_TIMEOUT
    if isinstance(exc, httpx.ConnectError):
        chain = _exception_chain(exc)
        if any(isinstance(e, socket.gaierror) for e in chain):
            return TransportErrorKind.DNS_RESOLUTION_FAILED
        message = " ".join(str(e) for e in chain).lower()
        if any(hint in message for hint in _DNS_ERROR_HINTS):
            return TransportErrorKind.DNS_RESOLUTION_FAILED
        return TransportErrorKind.CONNECTION_REFUSED
    return TransportErrorKind.UNKNOWN


class RequestExecutor:
    """带故障转移的请求执行器.

    每次调用从 ConnectionRegistry 获取一个随机的节点顺序，依次尝试：

    - 收到任意 HTTP 响应即视为成功，立即返回；
    - 连接超时会在同一节点上重试有限次数（默认 3 次，间隔约 1 秒）；
    - 单次尝试的总耗时受 request_timeout 限制，响应体缓慢到达也会超时；
    - 其他传输失败直接换下一个节点；
    - 全部节点失败后抛出 ExhaustedEndpointsError。

    执行器在多次调用之间不保存任何节点状态，节点不会被标记为不可用。
    同一进程内复用一个 httpx.Client 发送请求。

    Args:
        registry: 节点注册表
        config: 连接超时与重试配置
        http_client: 自定义 httpx.Client（例如测试时使用 MockTransport）
    """

    def __init__(
        self,
        registry: ConnectionRegistry,
        config: ConnectionConfig | None = None,
        http_client: httpx.Client | None = None,
    ) -> None:
        self.registry = registry
        self.config = config or ConnectionConfig()
        self._client = http_client or httpx.Client()
        self._owns_client = http_client is None
        self._serializer = JsonSerializer()
        logger.info(
            f"初始化请求执行器: endpoints={len(registry)}, "
            f"connect_timeout={self.config.connect_timeout}ms, "
            f"request_timeout={self.config.request_timeout}ms, "
            f"connect_retries={self.config.connect_retries}"
        )

    @property
    def timeout(self) -> httpx.Timeout:
        """每次尝试使用的超时设置，0 表示不限制."""

        def seconds(ms: int) -> float | None:
            return ms / 1000 if ms > 0 else None

        return httpx.Timeout(
            seconds(self.config.request_timeout),
            connect=seconds(self.config.connect_timeout),
        )

    def _encode_payload(self, payload: Any) -> bytes | None:
        """将负载编码为请求体，空负载不发送请求体."""
        if payload is None or payload is False:
            return None
        if isinstance(payload, (str, bytes, dict, list, tuple)) and len(payload) == 0:
            return None
        return self._serializer.dumps(payload)

    def _deadline(self) -> float | None:
        """本次尝试的截止时间，request_timeout 为 0 时不限制."""
        if self.config.request_timeout <= 0:
            return None
        return time.monotonic() + self.config.request_timeout / 1000

    @staticmethod
    def _read_body(response: httpx.Response, deadline: float | None) -> bytes:
        """读取响应体，超过截止时间时抛出 httpx.ReadTimeout.

        httpx 的超时只限制单次读写，响应体持续缓慢到达时需要在这里限制总耗时。
        """

        def check() -> None:
            if deadline is not None and time.monotonic() > deadline:
                raise httpx.ReadTimeout(
                    "请求总耗时超过 request_timeout", request=response.request
                )

        check()
        chunks = []
        for chunk in response.iter_bytes():
            chunks.append(chunk)
            check()
        return b"".join(chunks)

    def _decode_response(self, content: bytes, status: int) -> Any:
        """解码响应体，无法得到结构化数据时合成错误信息."""
        try:
            data = self._serializer.loads(content)
        except SerializationError:
            data = None
        if not data:
            data = {"error": content.decode("utf-8", errors="replace"), "code": status}
        return data

    def execute(
        self,
        path: str,
        method: str = "GET",
        payload: Any = None,
        content_type: str | None = None,
    ) -> TransportResponse:
        """对集群执行一次请求.

        Args:
            path: 资源路径（含查询字符串），例如 ``/users/doc/1?refresh=true``
            method: HTTP 方法
            payload: 请求负载；字符串/字节原样发送，映射和列表编码为 JSON
            content_type: 请求体的 Content-Type，默认 application/json

        Returns:
            TransportResponse 实例

        Raises:
            ExhaustedEndpointsError: 所有节点均失败时抛出
        """
        method = method.upper()
        body = self._encode_payload(payload)
        headers = {}
        if body is not None:
            headers["Content-Type"] = content_type or JSON_CONTENT_TYPE

        endpoints = self.registry.endpoints()
        protocol = self.config.protocol
        last_error: TransportError | None = None
        attempts = 0

        for i, endpoint in enumerate(endpoints):
            url = f"{endpoint.base_url(protocol)}{path}"
            retries = 0
            while True:
                attempts += 1
                logger.debug(f"{method} {url} (节点 {i + 1}/{len(endpoints)})")
                deadline = self._deadline()
                try:
                    with self._client.stream(
                        method,
                        url,
                        content=body,
                        headers=headers,
                        timeout=self.timeout,
                    ) as response:
                        content = self._read_body(response, deadline)
                except (httpx.HTTPError, httpx.InvalidURL) as e:
                    last_error = self._to_transport_error(
                        e, endpoint, url, method, payload
                    )
                    if (
                        last_error.kind.retry_same_endpoint
                        and retries < self.config.connect_retries
                    ):
                        retries += 1
                        logger.warning(
                            f"{last_error.message}，第 {retries} 次重试同一节点..."
                        )
                        time.sleep(self.config.retry_backoff)
                        continue
                    logger.warning(f"节点 {endpoint.host}:{endpoint.port} 不可用: {last_error}")
                    break

                return TransportResponse(
                    body=self._decode_response(content, response.status_code),
                    status=response.status_code,
                    endpoint=endpoint,
                    endpoints_tried=i + 1,
                    attempts=attempts,
                    headers=dict(response.headers),
                )

        if last_error is None:
            raise TransportError(
                "没有可用的节点", kind=TransportErrorKind.EXHAUSTED_ENDPOINTS, method=method
            )
        error = ExhaustedEndpointsError(
            last_error, len(endpoints), method=method, payload=payload
        )
        logger.error(f"{method} {path} 失败: {error.message}")
        raise error

    def _to_transport_error(
        self,
        exc: Exception,
        endpoint: Endpoint,
        url: str,
        method: str,
        payload: Any,
    ) -> TransportError:
        """根据失败类型构造带诊断信息的 TransportError."""
        kind = classify_error(exc)
        protocol = self.config.protocol
        if kind is TransportErrorKind.UNSUPPORTED_PROTOCOL:
            message = f"不支持的协议 [{protocol}]"
        elif kind is TransportErrorKind.MALFORMED_URL:
            message = f"URL 格式错误 [{url}]"
        elif kind is TransportErrorKind.DNS_RESOLUTION_FAILED:
            message = f"无法解析主机 [{endpoint.host}]"
        elif kind is TransportErrorKind.PROXY_RESOLUTION_FAILED:
            message = "无法解析代理"
        elif kind is TransportErrorKind.CONNECT_TIMEOUT:
            message = f"连接超时 [{url}]"
        elif kind is TransportErrorKind.REQUEST_TIMEOUT:
            message = f"请求超时 [{url}]"
        elif kind is TransportErrorKind.CONNECTION_REFUSED:
            message = f"无法连接到节点 [{endpoint.host}]，服务是否已停止？"
        elif isinstance(exc, httpx.TransportError):
            message = f"未知传输错误: {exc}"
        else:
            message = f"未知错误（非网络错误）: {exc}"

        error = TransportError(
            message,
            kind=kind,
            endpoint=endpoint,
            method=method,
            payload=payload,
            url=url,
        )
        error.__cause__ = exc
        return error

    # ============================================================
    # 生命周期管理
    # ============================================================

    def __enter__(self) -> RequestExecutor:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """关闭执行器自己创建的 httpx.Client."""
        if self._owns_client:
            self._client.close()
