"""客户端模块 - 配置解析与面向调用方的客户端.

主要组件:
    - ElasticClient: 客户端
    - ClientConfig: 客户端配置
    - parse_dsn: DSN 解析

使用示例:
    from elasticrelay.client import ElasticClient

    client = ElasticClient.connection("http://localhost:9200/users/doc")
"""

from ..exceptions import ConfigurationError
from .models import ClientConfig, parse_dsn
from .tool import ElasticClient

__all__ = [
    "ElasticClient",
    "ClientConfig",
    "parse_dsn",
    "ConfigurationError",
]
