"""核心模块导出."""

from elasticrelay.core.constants import BulkDefaults, ClientDefaults, TransportDefaults
from elasticrelay.core.utils import build_path, join_names

__all__ = [
    "ClientDefaults",
    "TransportDefaults",
    "BulkDefaults",
    "build_path",
    "join_names",
]
