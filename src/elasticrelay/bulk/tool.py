"""批量写入核心工具类."""

import logging
import time
from typing import Any

from elasticsearch.serializer import NdjsonSerializer

from ..core.constants import BulkDefaults, ClientDefaults
from ..transport.exceptions import TransportError
from ..transport.tool import NDJSON_CONTENT_TYPE, HttpTransport
from .exceptions import BulkProcessingError, BulkValidationError
from .models import BulkAction, BulkOperation, BulkResult

logger = logging.getLogger(__name__)

# update 请求体中已经是完整更新指令的字段
_UPDATE_BODY_KEYS = ("doc", "script", "upsert", "doc_as_upsert")


class BulkBatcher:
    """批量写入工具类.

    缓存一组 index/create/update/delete 操作，在 commit() 时按 chunk_size
    切分为多个分块，依次序列化为 NDJSON 提交到 ``/_bulk``，并把每个分块的
    结果按操作添加顺序合并为一个 BulkResult。

    Args:
        transport: HTTP 传输对象
        index: 默认索引名
        type: 默认文档类型
        chunk_size: 每个分块的操作数，0 或 None 表示不分块
        mirror: 是否把 index/delete 操作同时写入镜像索引
        mirror_suffix: 镜像索引名后缀

    Examples:
        >>> batcher = BulkBatcher(transport, "users", "doc", chunk_size=500)
        >>> batcher.index({"name": "Alice"}, id="1")
        >>> batcher.delete("2")
        >>> result = batcher.commit()
    """

    def __init__(
        self,
        transport: HttpTransport,
        index: str | None = None,
        type: str | None = None,
        chunk_size: int | None = BulkDefaults.CHUNK_SIZE,
        mirror: bool = ClientDefaults.MIRROR_INDEXING,
        mirror_suffix: str = ClientDefaults.MIRROR_INDEXING_SUFFIX,
    ):
        if chunk_size is not None and chunk_size < 0:
            raise BulkValidationError(f"chunk_size 必须 >= 0，当前值: {chunk_size}")
        self.transport = transport
        self.index_name = index
        self.type_name = type
        self.chunk_size = chunk_size or 0
        self.mirror = mirror
        self.mirror_suffix = mirror_suffix
        self._operations: list[BulkOperation] = []
        self._serializer = NdjsonSerializer()
        logger.info(
            f"初始化批量写入工具: index={index}, type={type}, "
            f"chunk_size={self.chunk_size}, mirror={mirror}"
        )

    # ============================================================
    # 添加操作
    # ============================================================

    def add(
        self,
        action: BulkAction | str,
        document: dict[str, Any] | None = None,
        id: Any = None,
        index: str | None = None,
        type: str | None = None,
    ) -> "BulkBatcher":
        """追加一个操作.

        Args:
            action: 操作类型（BulkAction 或 "index"/"create"/"update"/"delete"）
            document: 文档数据，delete 操作不能携带
            id: 文档ID
            index: 覆盖默认索引
            type: 覆盖默认类型

        Returns:
            批量写入工具自身（支持链式调用）

        Raises:
            BulkValidationError: 操作类型未知或文档数据与操作类型不匹配时抛出
        """
        try:
            action = BulkAction(action)
        except ValueError as e:
            raise BulkValidationError(f"未知的批量操作类型: {action}") from e

        if action.has_source and document is None:
            raise BulkValidationError(f"操作类型 {action.value} 需要提供文档数据")
        if not action.has_source and document is not None:
            raise BulkValidationError("delete 操作不能携带文档数据")
        if action in (BulkAction.UPDATE, BulkAction.DELETE) and id is None:
            raise BulkValidationError(f"操作类型 {action.value} 需要提供文档ID")

        self._operations.append(
            BulkOperation(
                action=action,
                doc_id=id,
                source=document,
                index_name=index,
                type_name=type,
            )
        )
        return self

    def index(
        self,
        document: dict[str, Any],
        id: Any = None,
        index: str | None = None,
        type: str | None = None,
    ) -> "BulkBatcher":
        """追加 index 操作（已存在则覆盖）."""
        return self.add(BulkAction.INDEX, document, id, index, type)

    def create(
        self,
        document: dict[str, Any],
        id: Any = None,
        index: str | None = None,
        type: str | None = None,
    ) -> "BulkBatcher":
        """追加 create 操作（已存在则该操作失败）."""
        return self.add(BulkAction.CREATE, document, id, index, type)

    def update(
        self,
        document: dict[str, Any],
        id: Any,
        index: str | None = None,
        type: str | None = None,
    ) -> "BulkBatcher":
        """追加 update 操作，document 未包含 doc/script 时作为部分文档更新."""
        return self.add(BulkAction.UPDATE, document, id, index, type)

    def delete(
        self,
        id: Any,
        index: str | None = None,
        type: str | None = None,
    ) -> "BulkBatcher":
        """追加 delete 操作."""
        return self.add(BulkAction.DELETE, None, id, index, type)

    @property
    def operations(self) -> tuple[BulkOperation, ...]:
        """当前缓存的操作."""
        return tuple(self._operations)

    def clear(self) -> None:
        """清空缓存的操作."""
        self._operations.clear()

    def __len__(self) -> int:
        return len(self._operations)

    # ============================================================
    # 序列化与提交
    # ============================================================

    def _chunks(self) -> list[list[BulkOperation]]:
        """按位置把操作切分为分块，chunk_size 为 0 时只有一个分块."""
        size = self.chunk_size or len(self._operations)
        return [
            self._operations[i : i + size]
            for i in range(0, len(self._operations), size)
        ]

    def _header(
        self, operation: BulkOperation, index_suffix: str = ""
    ) -> dict[str, Any]:
        """构建操作头，形如 {"index": {"_index": ..., "_type": ..., "_id": ...}}."""
        index_name = operation.index_name or self.index_name
        type_name = operation.type_name or self.type_name

        metadata: dict[str, Any] = {"_index": f"{index_name or ''}{index_suffix}"}
        if type_name:
            metadata["_type"] = type_name
        if operation.doc_id is not None:
            metadata["_id"] = operation.doc_id
        return {operation.action.value: metadata}

    @staticmethod
    def _body(operation: BulkOperation) -> dict[str, Any]:
        """构建操作体，update 操作的部分文档会包装为 {"doc": ...}."""
        source = operation.source or {}
        if operation.action is BulkAction.UPDATE and not any(
            key in source for key in _UPDATE_BODY_KEYS
        ):
            return {"doc": source}
        return source

    def serialize(
        self, operations: list[BulkOperation], index_suffix: str = ""
    ) -> bytes:
        """将操作序列化为 NDJSON 请求体.

        每个操作贡献一行操作头和一行文档（delete 只有操作头），整个请求体以换行结尾。

        Args:
            operations: 操作列表
            index_suffix: 追加到索引名后的后缀（用于镜像写入）

        Returns:
            NDJSON 编码的请求体
        """
        lines: list[dict[str, Any]] = []
        for operation in operations:
            lines.append(self._header(operation, index_suffix))
            if operation.action.has_source:
                lines.append(self._body(operation))
        return self._serializer.dumps(lines)

    def _submit(
        self, payload: bytes, chunk_index: int, expected: int
    ) -> tuple[list[dict[str, Any]], bool]:
        """提交一个分块并校验响应，返回 (items, errors)."""
        response = self.transport.perform(
            BulkDefaults.ENDPOINT,
            "POST",
            payload,
            content_type=NDJSON_CONTENT_TYPE,
        ).body

        items = response.get("items") if isinstance(response, dict) else None
        if not isinstance(items, list):
            raise BulkProcessingError(
                f"分块 {chunk_index + 1} 的响应中缺少 items: {response}",
                chunk_index=chunk_index,
                response=response,
            )
        if len(items) != expected:
            raise BulkProcessingError(
                f"分块 {chunk_index + 1} 的结果数 {len(items)} 与操作数 {expected} 不一致",
                chunk_index=chunk_index,
                response=response,
            )

        errors = bool(response.get("errors")) or any(
            isinstance(detail, dict) and "error" in detail
            for item in items
            for detail in item.values()
        )
        return items, errors

    def commit(self) -> BulkResult:
        """提交所有缓存的操作.

        分块严格按顺序依次提交，合并后的 items 与操作添加顺序一一对应。
        单个操作失败不会中断提交，只会记录在 items 中并使 errors 为 True。
        每个分块提交成功后即从缓存中移除，全部成功后缓存为空，工具可以继续复用。

        Returns:
            批量写入结果

        Raises:
            BulkProcessingError: 某个分块无法送达任何节点，或其响应无法按位置对应回
                操作时抛出。已提交分块的结果保存在异常的 result 中，出错分块及之后的
                操作仍在缓存中，再次 commit() 不会重复提交已接受的分块。镜像分块失败时
                对应的主分块已被接受，不在缓存中
        """
        if not self._operations:
            return BulkResult()

        result = BulkResult()
        start_time = time.monotonic()

        for chunk_index, chunk in enumerate(self._chunks()):
            try:
                items, errors = self._submit(
                    self.serialize(chunk), chunk_index, len(chunk)
                )
            except (BulkProcessingError, TransportError) as e:
                raise self._chunk_failure(e, chunk_index, result, start_time) from e

            # 已被服务端接受的分块不能再次提交
            del self._operations[: len(chunk)]
            result.items.extend(items)
            result.errors = result.errors or errors
            result.chunk_count += 1

            if errors:
                logger.error(f"分块 {chunk_index + 1}: {len(chunk)} 个操作中存在失败")
            else:
                logger.info(f"分块 {chunk_index + 1}: 全部成功 ({len(chunk)})")

            if self.mirror:
                try:
                    mirror_errors = self._commit_mirror(chunk, chunk_index)
                except (BulkProcessingError, TransportError) as e:
                    raise self._chunk_failure(e, chunk_index, result, start_time) from e
                result.errors = mirror_errors or result.errors

        result.took = time.monotonic() - start_time
        return result

    @staticmethod
    def _chunk_failure(
        error: Exception, chunk_index: int, result: BulkResult, start_time: float
    ) -> BulkProcessingError:
        """构造分块失败异常，附带出错前已提交分块的结果."""
        result.took = time.monotonic() - start_time
        logger.error(
            f"分块 {chunk_index + 1} 提交失败，已提交 {result.chunk_count} 个分块: {error}"
        )
        if isinstance(error, BulkProcessingError):
            message = str(error)
            response = error.response
        else:
            message = f"分块 {chunk_index + 1} 提交失败: {error}"
            response = None
        return BulkProcessingError(
            message, chunk_index=chunk_index, response=response, result=result
        )

    def _commit_mirror(self, chunk: list[BulkOperation], chunk_index: int) -> bool:
        """把分块中的 index/delete 操作写入镜像索引，返回镜像写入是否有失败.

        镜像结果不会合并到 items 中。
        """
        mirrored = [
            op
            for op in chunk
            if op.action in (BulkAction.INDEX, BulkAction.DELETE)
        ]
        if not mirrored:
            return False

        _, errors = self._submit(
            self.serialize(mirrored, self.mirror_suffix), chunk_index, len(mirrored)
        )
        if errors:
            logger.error(f"镜像分块 {chunk_index + 1}: 存在失败")
        return errors
