"""批量写入异常定义模块."""

from typing import Any

from ..exceptions import ElasticRelayError


class BulkError(ElasticRelayError):
    """批量写入基础异常类."""

    pass


class BulkValidationError(BulkError):
    """批量操作验证异常.

    当操作类型未知，或文档数据与操作类型不匹配时抛出
    （例如 delete 携带了文档，index/create/update 缺少文档）。
    """

    pass


class BulkProcessingError(BulkError):
    """批量分块处理异常.

    某个分块无法送达任何节点，或其响应中没有 items 列表、items 数量与分块中的
    操作数不一致（无法按位置把结果对应回操作）时抛出。

    出错之前已被服务端接受的分块已从缓存中移除，其结果保存在 result 中；
    出错分块及之后的操作仍保留在缓存中，可以再次 commit()。

    Attributes:
        chunk_index: 出错分块的序号（从 0 开始）
        response: 分块的原始响应（传输失败时为 None）
        result: 出错前已提交分块的合并结果
    """

    def __init__(
        self,
        message: str,
        chunk_index: int,
        response: Any = None,
        result: Any = None,
    ) -> None:
        super().__init__(message)
        self.chunk_index = chunk_index
        self.response = response
        self.result = result
