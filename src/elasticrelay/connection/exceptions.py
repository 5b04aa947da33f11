"""连接注册表异常定义模块."""

from ..exceptions import ElasticRelayError


class ConnectionConfigError(ElasticRelayError):
    """连接配置校验异常.

    当连接配置参数不合法时抛出，例如 host 为空、端口越界、超时为负数等。
    """

    pass
