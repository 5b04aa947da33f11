"""HTTP 传输工具模块.

HttpTransport 保存当前选中的索引和类型，把 index/delete/search 等操作
转换为 (路径, 方法, 负载) 三元组，交给 RequestExecutor 执行。
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

from ..core.constants import ClientDefaults
from ..core.utils import build_path, join_names
from .executor import RequestExecutor
from .mirror import MirrorWriter
from .models import TransportResponse

logger = logging.getLogger(__name__)

NDJSON_CONTENT_TYPE = "application/x-ndjson"


class HttpTransport:
    """HTTP 传输对象.

    Args:
        executor: 请求执行器
        index: 当前索引名，列表会以逗号连接
        type: 当前文档类型，列表会以逗号连接
        mirror: 是否开启镜像写入
        mirror_suffix: 镜像索引名后缀

    Examples:
        >>> transport = HttpTransport(executor, index="users", type="doc")
        >>> transport.index({"name": "Alice"}, id=1)
    """

    def __init__(
        self,
        executor: RequestExecutor,
        index: str | Sequence[str] | None = None,
        type: str | Sequence[str] | None = None,
        mirror: bool = ClientDefaults.MIRROR_INDEXING,
        mirror_suffix: str = ClientDefaults.MIRROR_INDEXING_SUFFIX,
    ) -> None:
        self.executor = executor
        self._index = join_names(index)
        self._type = join_names(type)
        self.mirror = mirror
        self.mirror_writer = MirrorWriter(self, mirror_suffix)

    # ============================================================
    # 索引/类型选择
    # ============================================================

    @property
    def current_index(self) -> str | None:
        """当前选中的索引."""
        return self._index

    def set_index(self, index: str | Sequence[str] | None) -> None:
        """设置当前索引."""
        self._index = join_names(index)

    @property
    def current_type(self) -> str | None:
        """当前选中的文档类型."""
        return self._type

    def set_type(self, type: str | Sequence[str] | None) -> None:
        """设置当前文档类型."""
        self._type = join_names(type)

    def build_path(
        self,
        path: str | Sequence[Any] | None = None,
        options: dict[str, Any] | None = None,
        index: str | None = None,
    ) -> str:
        """在当前索引（或显式指定的 index）下构建资源路径."""
        return build_path(path, options, index=self._index if index is None else index)

    # ============================================================
    # 请求
    # ============================================================

    def perform(
        self,
        path: str,
        method: str = "GET",
        payload: Any = None,
        content_type: str | None = None,
    ) -> TransportResponse:
        """对已构建好的路径执行请求，返回完整的传输结果."""
        return self.executor.execute(path, method, payload, content_type=content_type)

    def request(
        self,
        path: str | Sequence[Any] | None,
        method: str = "GET",
        payload: Any = None,
        options: dict[str, Any] | None = None,
    ) -> Any:
        """对给定的路径/方法/负载组合执行请求.

        示例:
            >>> transport.request("/_cluster/health")

        Returns:
            解码后的响应数据
        """
        return self.perform(self.build_path(path, options), method, payload).body

    def index_into(
        self,
        target: str | None,
        document: Any,
        id: Any = None,
        options: dict[str, Any] | None = None,
    ) -> Any:
        """将文档写入指定索引，指定 id 时使用 PUT，否则使用 POST 自动生成 id."""
        url = self.build_path([self._type, id], options, index=target)
        method = "POST" if id is None or id is False else "PUT"
        return self.perform(url, method, document).body

    def delete_from(
        self,
        target: str | None,
        id: Any = None,
        options: dict[str, Any] | None = None,
    ) -> Any:
        """从指定索引删除文档，不指定 id 时删除整个索引."""
        path = [self._type, id] if id is not None and id is not False else None
        return self.perform(self.build_path(path, options, index=target), "DELETE").body

    def index(
        self,
        document: Any,
        id: Any = None,
        options: dict[str, Any] | None = None,
    ) -> Any:
        """索引文档，已存在时覆盖.

        Args:
            document: 文档数据
            id: 文档 ID，可选
            options: 查询参数，例如 {"refresh": True}

        Returns:
            写入结果
        """
        if self.mirror:
            return self.mirror_writer.index(document, id, options)
        return self.index_into(self._index, document, id, options)

    def delete(self, id: Any = None, options: dict[str, Any] | None = None) -> Any:
        """删除文档；不指定 id 时删除整个索引."""
        if self.mirror:
            return self.mirror_writer.delete(id, options)
        return self.delete_from(self._index, id, options)

    def search(
        self, query: dict[str, Any] | str, options: dict[str, Any] | None = None
    ) -> Any:
        """执行搜索.

        映射类型的 query 视为 JSON DSL，以 GET 请求体发送；字符串 query
        视为 query string 搜索，以 ``q`` 参数发送。
        """
        if isinstance(query, str):
            params = {"q": query, **(options or {})}
            return self.request([self._type, "_search"], "POST", options=params)
        return self.request([self._type, "_search"], "GET", query, options=options)

    def multi_search(self, payload: str | bytes) -> Any:
        """执行多重搜索，payload 为 NDJSON 格式的请求体."""
        return self.perform(
            self.build_path("/_msearch"),
            "GET",
            payload,
            content_type=NDJSON_CONTENT_TYPE,
        ).body

    def delete_by_query(
        self, query: dict[str, Any] | str, options: dict[str, Any] | None = None
    ) -> bool:
        """删除所有匹配查询的文档.

        Args:
            query: JSON DSL 查询，或 query string
            options: 查询参数；``refresh`` 默认为 True，删除后刷新索引

        Returns:
            响应中没有 error 且 ok 为真时返回 True
        """
        params = dict(options or {})
        refresh = params.pop("refresh", True)

        if isinstance(query, str):
            params["q"] = query
            result = self.request([self._type, "_query"], "DELETE", options=params)
        else:
            result = self.request([self._type, "_query"], "DELETE", query, options=params)

        if refresh:
            self.request("_refresh", "POST")

        logger.info(f"按查询删除完成: index={self._index}, type={self._type}")
        return isinstance(result, dict) and "error" not in result and bool(result.get("ok"))

    def close(self) -> None:
        """关闭底层执行器."""
        self.executor.close()
