"""镜像写入模块.

开启镜像后，index/delete 操作在写入当前索引之后，会以同样的参数再写入一次
``index + mirror_suffix`` 索引，用于在线重建索引或迁移。

目标索引作为参数显式传递给每一次写入，传输对象上的当前索引在整个过程中
不会被修改，因此镜像写入失败后也不会停留在镜像索引上。
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

from .exceptions import MirrorWriteError, TransportError

if TYPE_CHECKING:
    from .tool import HttpTransport

logger = logging.getLogger(__name__)


class MirrorWriter:
    """镜像写入器.

    Args:
        transport: 执行实际写入的传输对象
        suffix: 镜像索引名后缀，默认 ``_mirror``
    """

    def __init__(self, transport: HttpTransport, suffix: str) -> None:
        self.transport = transport
        self.suffix = suffix

    def mirror_name(self, index: str | None) -> str:
        """返回索引对应的镜像索引名."""
        return f"{index or ''}{self.suffix}"

    def index(
        self,
        document: Any,
        id: Any = None,
        options: dict[str, Any] | None = None,
    ) -> Any:
        """将文档同时写入当前索引和镜像索引.

        Returns:
            当前索引的写入结果

        Raises:
            TransportError: 主索引写入失败时抛出，此时不会写入镜像索引
            MirrorWriteError: 镜像索引写入失败时抛出
        """
        return self._replay(
            "index",
            lambda target: self.transport.index_into(target, document, id, options),
        )

    def delete(self, id: Any = None, options: dict[str, Any] | None = None) -> Any:
        """同时从当前索引和镜像索引中删除文档（不指定 id 时删除整个索引）.

        Returns:
            当前索引的删除结果

        Raises:
            TransportError: 主索引删除失败时抛出，此时不会操作镜像索引
            MirrorWriteError: 镜像索引删除失败时抛出
        """
        return self._replay(
            "delete",
            lambda target: self.transport.delete_from(target, id, options),
        )

    def _replay(self, operation: str, write: Callable[[str | None], Any]) -> Any:
        """先写入当前索引，再写入镜像索引，两者都成功才返回."""
        index = self.transport.current_index
        primary = write(index)

        mirror_index = self.mirror_name(index)
        try:
            secondary = write(mirror_index)
        except TransportError as e:
            logger.error(f"镜像{operation}失败: index={mirror_index}, error={e}")
            raise MirrorWriteError(
                f"镜像索引 {mirror_index} {operation} 失败: {e.message}",
                mirror_index=mirror_index,
                primary=primary,
                cause=e,
            ) from e

        if isinstance(secondary, dict) and "error" in secondary:
            logger.error(
                f"镜像{operation}返回错误: index={mirror_index}, "
                f"error={secondary['error']}"
            )
            raise MirrorWriteError(
                f"镜像索引 {mirror_index} {operation} 返回错误: {secondary['error']}",
                mirror_index=mirror_index,
                primary=primary,
            )
        return primary
