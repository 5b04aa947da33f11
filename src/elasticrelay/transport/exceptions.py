"""传输层异常定义模块."""

from typing import Any

from ..connection.models import Endpoint
from ..exceptions import ElasticRelayError
from .models import TransportErrorKind


class TransportError(ElasticRelayError):
    """传输层异常.

    所有底层网络失败都会被归类为 TransportErrorKind 之一，并携带节点、
    请求方法和负载等诊断信息，便于调用方记录日志。

    Attributes:
        message: 错误信息
        kind: 失败类型
        endpoint: 发生失败的节点
        method: HTTP 方法
        payload: 请求负载
        url: 完整请求地址
    """

    def __init__(
        self,
        message: str,
        kind: TransportErrorKind = TransportErrorKind.UNKNOWN,
        endpoint: Endpoint | None = None,
        method: str | None = None,
        payload: Any = None,
        url: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.kind = kind
        self.endpoint = endpoint
        self.method = method
        self.payload = payload
        self.url = url

    def __str__(self) -> str:
        return f"[{self.kind.value}] {self.message}"


class ExhaustedEndpointsError(TransportError):
    """所有节点均尝试失败异常.

    Attributes:
        last_error: 最后一次观察到的、已分类的传输错误
        endpoints_tried: 尝试过的节点数
    """

    def __init__(
        self,
        last_error: TransportError,
        endpoints_tried: int,
        method: str | None = None,
        payload: Any = None,
    ) -> None:
        super().__init__(
            f"已尝试全部 {endpoints_tried} 个节点均失败，最后错误: {last_error.message}",
            kind=TransportErrorKind.EXHAUSTED_ENDPOINTS,
            endpoint=last_error.endpoint,
            method=method,
            payload=payload,
            url=last_error.url,
        )
        self.last_error = last_error
        self.endpoints_tried = endpoints_tried


class MirrorWriteError(TransportError):
    """镜像写入失败异常.

    主索引写入完成后，镜像索引的写入失败时抛出。

    Attributes:
        mirror_index: 镜像索引名
        primary: 主索引写入的响应
    """

    def __init__(
        self,
        message: str,
        mirror_index: str,
        primary: Any = None,
        cause: TransportError | None = None,
    ) -> None:
        super().__init__(
            message,
            kind=cause.kind if cause else TransportErrorKind.UNKNOWN,
            endpoint=cause.endpoint if cause else None,
            method=cause.method if cause else None,
            payload=cause.payload if cause else None,
            url=cause.url if cause else None,
        )
        self.mirror_index = mirror_index
        self.primary = primary
