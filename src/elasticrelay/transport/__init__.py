"""传输层模块 - 带故障转移的请求执行、镜像写入和 HTTP 传输.

主要组件:
    - RequestExecutor: 按随机节点顺序执行请求并对失败分类
    - HttpTransport: 维护当前索引/类型，提供 index/delete/search 等操作
    - MirrorWriter: 将 index/delete 同时写入镜像索引
    - TransportErrorKind: 传输失败类型枚举

使用示例:
    from elasticrelay.connection import ConnectionRegistry, Endpoint
    from elasticrelay.transport import HttpTransport, RequestExecutor

    executor = RequestExecutor(ConnectionRegistry([Endpoint("localhost", 9200)]))
    transport = HttpTransport(executor, index="users", type="doc")
    transport.index({"name": "Alice"}, id=1)
"""

from .exceptions import ExhaustedEndpointsError, MirrorWriteError, TransportError
from .executor import RequestExecutor, classify_error
from .mirror import MirrorWriter
from .models import TransportErrorKind, TransportResponse
from .tool import NDJSON_CONTENT_TYPE, HttpTransport

__all__ = [
    # 执行器与传输
    "RequestExecutor",
    "HttpTransport",
    "MirrorWriter",
    "classify_error",
    "NDJSON_CONTENT_TYPE",
    # 模型
    "TransportErrorKind",
    "TransportResponse",
    # 异常
    "TransportError",
    "ExhaustedEndpointsError",
    "MirrorWriteError",
]
