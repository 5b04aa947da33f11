"""批量写入模块.

该模块把一组 index/create/update/delete 操作缓存起来，按固定大小切分为
多个分块依次提交到 ``/_bulk``，并按添加顺序合并每个操作的结果：
- 操作头/文档交替的 NDJSON 序列化
- 按操作数切分分块
- 跨分块保持结果顺序，汇总 errors 标记
- 可选的镜像索引写入

示例用法:
    >>> from elasticrelay.bulk import BulkBatcher
    >>> batcher = BulkBatcher(transport, "users", "doc", chunk_size=500)
    >>> batcher.index({"name": "Alice"}, id="1")
    >>> result = batcher.commit()
    >>> print(f"errors: {result.errors}, items: {len(result.items)}")
"""

from .exceptions import (
    BulkError,
    BulkProcessingError,
    BulkValidationError,
)
from .models import (
    BulkAction,
    BulkOperation,
    BulkResult,
)
from .tool import BulkBatcher

__all__ = [
    "BulkAction",
    "BulkOperation",
    "BulkResult",
    "BulkBatcher",
    "BulkError",
    "BulkProcessingError",
    "BulkValidationError",
]
