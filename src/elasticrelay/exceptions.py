"""elasticrelay 异常定义模块."""


class ElasticRelayError(Exception):
    """elasticrelay 基础异常类."""

    pass


class ConfigurationError(ElasticRelayError):
    """客户端配置异常.

    当 DSN 无法解析、协议未知或映射的类型约束不满足时抛出。
    """

    pass
