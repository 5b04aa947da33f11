"""elasticrelay 默认配置常量定义模块."""


class ClientDefaults:
    """客户端默认配置."""

    PROTOCOL = "http"
    HOST = "127.0.0.1"
    PORT = 9200
    INDEX = "default-index"
    TYPE = "default-type"
    MIRROR_INDEXING = False
    MIRROR_INDEXING_SUFFIX = "_mirror"

    # 环境变量中的 DSN，例如 http://127.0.0.1:9200/index/type
    DSN_ENV_VAR = "ELASTICSEARCH_URL"


class TransportDefaults:
    """传输层默认配置."""

    # 连接超时（毫秒）
    CONNECT_TIMEOUT_MS = 500
    # 单次请求总超时（毫秒）
    REQUEST_TIMEOUT_MS = 6000
    # 连接超时时对同一节点的最大重试次数
    CONNECT_RETRIES = 3
    # 重试间隔（秒）
    RETRY_BACKOFF = 1.0

    SUPPORTED_PROTOCOLS = ("http", "https")


class BulkDefaults:
    """批量写入默认配置."""

    # 0 表示不分块，全部操作作为一个请求提交
    CHUNK_SIZE = 0
    ENDPOINT = "/_bulk"
