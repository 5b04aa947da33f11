"""批量写入数据模型定义模块."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class BulkAction(Enum):
    """批量操作类型枚举."""

    INDEX = "index"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @property
    def has_source(self) -> bool:
        """该操作是否需要携带文档数据（delete 不需要）."""
        return self is not BulkAction.DELETE


@dataclass
class BulkOperation:
    """批量操作项数据类.

    Attributes:
        action: 操作类型
        doc_id: 文档ID（可选，对于 INDEX 操作如果不指定则自动生成）
        source: 文档数据（用于 INDEX、CREATE、UPDATE 操作）
        index_name: 覆盖批次默认索引的索引名（可选）
        type_name: 覆盖批次默认类型的类型名（可选）
    """

    action: BulkAction
    doc_id: Any = None
    source: dict[str, Any] | None = None
    index_name: str | None = None
    type_name: str | None = None


@dataclass
class BulkResult:
    """批量写入结果数据类.

    Attributes:
        took: 所有分块的总耗时（秒）
        errors: 任一分块中任一操作失败时为 True
        items: 按操作添加顺序排列的每个操作的结果，形如 {"index": {"status": 201, ...}}
        chunk_count: 提交的分块数
    """

    took: float = 0.0
    errors: bool = False
    items: list[dict[str, Any]] = field(default_factory=list)
    chunk_count: int = 0

    def is_success(self) -> bool:
        """判断操作是否全部成功."""
        return not self.errors

    def failed_items(self) -> list[tuple[int, dict[str, Any]]]:
        """返回失败的结果项及其在 items 中的位置."""
        failed = []
        for position, item in enumerate(self.items):
            for detail in item.values():
                if isinstance(detail, dict) and "error" in detail:
                    failed.append((position, item))
                    break
        return failed

    def to_dict(self) -> dict[str, Any]:
        """转换为 {took, errors, items} 形式的字典."""
        return {"took": self.took, "errors": self.errors, "items": list(self.items)}

    def get_error_summary(self) -> str:
        """获取错误摘要."""
        failed = self.failed_items()
        if not failed:
            return "No errors"
        summary = f"Total errors: {len(failed)}\n"
        for position, item in failed[:10]:  # 只显示前10个错误
            action, detail = next(iter(item.items()))
            summary += (
                f"{position}. [{action}] "
                f"Index: {detail.get('_index')}, DocID: {detail.get('_id')}, "
                f"Status: {detail.get('status')}, Reason: {detail.get('error')}\n"
            )
        if len(failed) > 10:
            summary += f"... and {len(failed) - 10} more errors\n"
        return summary
