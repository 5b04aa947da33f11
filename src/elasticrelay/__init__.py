"""elasticrelay - 带故障转移的搜索引擎 HTTP 客户端.

这是一个通过 HTTP 访问文档型搜索引擎集群的 Python 库。

主要功能:
    - ConnectionRegistry: 保存可互换的集群节点，每次请求随机遍历
    - RequestExecutor: 带故障转移的请求执行，对传输失败分类并决定重试或换节点
    - MirrorWriter: 将 index/delete 同时写入镜像索引
    - BulkBatcher: 分块提交批量写入，并按顺序合并结果
    - ElasticClient: 面向调用方的客户端

使用示例:
    from elasticrelay import ElasticClient

    client = ElasticClient.connection("http://localhost:9200/users/doc")
    batcher = client.bulk(chunk_size=500)
    batcher.index({"name": "Alice"}, id="1")
    result = batcher.commit()
"""

__version__ = "0.1.0"

# 导出批量写入
from elasticrelay.bulk import (
    BulkAction,
    BulkBatcher,
    BulkError,
    BulkOperation,
    BulkProcessingError,
    BulkResult,
    BulkValidationError,
)

# 导出客户端
from elasticrelay.client import ClientConfig, ElasticClient, parse_dsn

# 导出连接组件
from elasticrelay.connection import (
    ConnectionConfig,
    ConnectionConfigError,
    ConnectionRegistry,
    Endpoint,
)

# 导出路径构建
from elasticrelay.core import build_path

# 导出异常
from elasticrelay.exceptions import ConfigurationError, ElasticRelayError

# 导出传输层
from elasticrelay.transport import (
    ExhaustedEndpointsError,
    HttpTransport,
    MirrorWriteError,
    MirrorWriter,
    RequestExecutor,
    TransportError,
    TransportErrorKind,
    TransportResponse,
)

__all__ = [
    # 版本
    "__version__",
    # 客户端
    "ElasticClient",
    "ClientConfig",
    "parse_dsn",
    # 连接
    "ConnectionRegistry",
    "Endpoint",
    "ConnectionConfig",
    # 传输
    "RequestExecutor",
    "HttpTransport",
    "MirrorWriter",
    "TransportErrorKind",
    "TransportResponse",
    "build_path",
    # 批量写入
    "BulkBatcher",
    "BulkAction",
    "BulkOperation",
    "BulkResult",
    # 异常
    "ElasticRelayError",
    "ConfigurationError",
    "ConnectionConfigError",
    "TransportError",
    "ExhaustedEndpointsError",
    "MirrorWriteError",
    "BulkError",
    "BulkProcessingError",
    "BulkValidationError",
]
