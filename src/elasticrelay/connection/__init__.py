"""连接注册表模块 - 保存集群节点并为每次请求提供随机的遍历顺序.

主要组件:
    - ConnectionRegistry: 节点注册表
    - Endpoint: 节点模型
    - ConnectionConfig: 连接超时与重试配置

使用示例:
    from elasticrelay.connection import ConnectionRegistry, Endpoint

    registry = ConnectionRegistry([Endpoint("localhost", 9200)])
    ordering = registry.endpoints()
"""

from .exceptions import ConnectionConfigError
from .models import ConnectionConfig, Endpoint
from .tool import ConnectionRegistry

__all__ = [
    # 注册表
    "ConnectionRegistry",
    # 模型
    "Endpoint",
    "ConnectionConfig",
    # 异常
    "ConnectionConfigError",
]
