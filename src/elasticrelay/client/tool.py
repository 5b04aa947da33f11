"""搜索引擎客户端工具模块.

提供 ElasticClient 类，把文档读取、索引、搜索、删除、映射、多重搜索和
批量写入等操作转换为路径/方法/负载，交给 HttpTransport 执行。

使用示例:
    from elasticrelay.client import ElasticClient

    client = ElasticClient.connection("http://localhost:9200/users/doc")
    client.index({"name": "Alice"}, id=1)
    doc = client.get(1)

    batcher = client.bulk(chunk_size=500)
    batcher.index({"name": "Bob"}, id=2)
    result = batcher.commit()
"""

from __future__ import annotations

import logging
import os
import time
from collections.abc import Sequence
from typing import Any

import httpx
from elasticsearch.serializer import NdjsonSerializer

from ..bulk.tool import BulkBatcher
from ..connection.tool import ConnectionRegistry
from ..core.constants import ClientDefaults, TransportDefaults
from ..core.utils import join_names
from ..exceptions import ConfigurationError
from ..transport.executor import RequestExecutor
from ..transport.tool import HttpTransport
from .models import ClientConfig, parse_dsn

logger = logging.getLogger(__name__)


class ElasticClient:
    """搜索引擎客户端.

    Attributes:
        transport: HTTP 传输对象
        config: 客户端配置
        _searches: 等待作为多重搜索执行的查询

    Examples:
        >>> client = ElasticClient.connection(
        ...     {"servers": [{"host": "es1", "port": 9200}], "index": "users"}
        ... )
        >>> client.search({"query": {"match_all": {}}})
    """

    def __init__(
        self,
        transport: HttpTransport,
        index: str | Sequence[str] | None = None,
        type: str | Sequence[str] | None = None,
        config: ClientConfig | None = None,
    ) -> None:
        """初始化客户端.

        Args:
            transport: HTTP 传输对象
            index: 当前索引
            type: 当前文档类型
            config: 客户端配置，默认使用 ClientConfig 的默认值
        """
        self.transport = transport
        self.config = config or ClientConfig()
        self._searches: list[tuple[Any, str | None, str | None]] = []
        self._serializer = NdjsonSerializer()
        self.set_index(index).set_type(type)

    @classmethod
    def connection(
        cls,
        config: ClientConfig | dict[str, Any] | str | None = None,
        http_client: httpx.Client | None = None,
    ) -> ElasticClient:
        """创建客户端.

        未提供配置时，若设置了环境变量 ``ELASTICSEARCH_URL`` 则将其作为 DSN 解析；
        字符串配置视为 DSN；映射配置在默认配置之上覆盖。

        Args:
            config: ClientConfig、配置覆盖项映射或 DSN 字符串
            http_client: 自定义 httpx.Client

        Returns:
            ElasticClient 实例

        Raises:
            ConfigurationError: 当 DSN 无法解析或协议未知时抛出
        """
        if not config:
            config = os.environ.get(ClientDefaults.DSN_ENV_VAR) or None
        if isinstance(config, str):
            config = parse_dsn(config)
        if not isinstance(config, ClientConfig):
            config = ClientConfig.from_mapping(config)

        if config.protocol not in TransportDefaults.SUPPORTED_PROTOCOLS:
            raise ConfigurationError(f"未知的协议: {config.protocol}")

        executor = RequestExecutor(
            ConnectionRegistry(config.servers),
            config.connection_config(),
            http_client=http_client,
        )
        transport = HttpTransport(
            executor,
            index=config.index,
            type=config.type,
            mirror=config.mirror_indexing,
            mirror_suffix=config.mirror_indexing_suffix,
        )
        logger.info(
            f"创建客户端: servers={len(config.servers)}, index={config.index}, "
            f"type={config.type}, mirror={config.mirror_indexing}"
        )
        return cls(transport, config.index, config.type, config=config)

    # ============================================================
    # 索引/类型选择
    # ============================================================

    @property
    def current_index(self) -> str | None:
        return self.transport.current_index

    @property
    def current_type(self) -> str | None:
        return self.transport.current_type

    def set_index(self, index: str | Sequence[str] | None) -> ElasticClient:
        """切换当前索引，列表会以逗号连接.

        Returns:
            客户端自身（支持链式调用）
        """
        self.transport.set_index(join_names(index))
        return self

    def set_type(self, type: str | Sequence[str] | None) -> ElasticClient:
        """切换当前文档类型，列表会以逗号连接.

        Returns:
            客户端自身（支持链式调用）
        """
        self.transport.set_type(join_names(type))
        return self

    def _expand_path(self, path: Any) -> str | list[Any]:
        """相对路径前会加上当前类型，绝对路径原样使用."""
        if isinstance(path, str) and path.startswith("/"):
            return path
        segments = list(path) if isinstance(path, (list, tuple)) else [path]
        if segments and isinstance(segments[0], str) and segments[0].startswith("/"):
            return segments
        return [self.current_type, *segments]

    # ============================================================
    # 文档操作
    # ============================================================

    def request(
        self,
        path: Any,
        method: str = "GET",
        payload: Any = None,
        verbose: bool = False,
    ) -> Any:
        """执行原始请求.

        Args:
            path: 请求路径，相对路径会拼接在当前索引和类型之下
            method: HTTP 方法
            payload: 请求负载
            verbose: 为 False 时，响应中存在 ``_source`` 则只返回 ``_source``

        Returns:
            解码后的响应数据
        """
        response = self.transport.request(self._expand_path(path), method, payload)
        if verbose or not isinstance(response, dict) or "_source" not in response:
            return response
        return response["_source"]

    def get(self, id: Any, verbose: bool = False) -> Any:
        """根据 ID 获取文档."""
        return self.request(id, "GET", None, verbose)

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
            options: 查询参数，例如 {"refresh": True} 写入后立即刷新分片
        """
        return self.transport.index(document, id, options)

    def search(
        self, query: dict[str, Any] | str, options: dict[str, Any] | None = None
    ) -> Any:
        """执行搜索，结果中附带耗时 ``time``（秒）."""
        start_time = time.monotonic()
        result = self.transport.search(query, options)
        if isinstance(result, dict):
            result["time"] = time.monotonic() - start_time
        return result

    def delete(self, id: Any = None, options: dict[str, Any] | None = None) -> Any:
        """删除文档；不指定 id 时删除整个索引."""
        return self.transport.delete(id, options)

    def delete_by_query(
        self, query: dict[str, Any] | str, options: dict[str, Any] | None = None
    ) -> bool:
        """删除所有匹配查询的文档."""
        return self.transport.delete_by_query(query, options)

    def refresh(self) -> Any:
        """刷新当前索引."""
        return self.transport.request("_refresh", "POST")

    def put_mapping(
        self,
        mapping: dict[str, Any],
        type: str | Sequence[str] | None = None,
    ) -> Any:
        """在当前索引上设置映射.

        Args:
            mapping: 映射定义
            type: 映射针对的类型，必须都在当前类型之中

        Raises:
            ConfigurationError: 类型约束不满足时抛出
        """
        if type is not None and not self._passes_type_constraint(type):
            raise ConfigurationError(
                f"类型约束不匹配，无法创建映射: {type} 不在 {self.current_type} 中"
            )
        return self.request("_mapping", "PUT", mapping, verbose=True)

    def _passes_type_constraint(self, constraint: str | Sequence[str]) -> bool:
        if isinstance(constraint, str):
            constraint = [constraint]
        current_types = (self.current_type or "").split(",")
        return bool(constraint) and all(t in current_types for t in constraint)

    # ============================================================
    # 多重搜索
    # ============================================================

    def queue_search(
        self,
        query: dict[str, Any],
        index: str | None = None,
        type: str | None = None,
    ) -> ElasticClient:
        """将查询加入多重搜索队列.

        Returns:
            客户端自身（支持链式调用）
        """
        self._searches.append((query, index, type))
        return self

    def build_multi_search_request(self) -> str:
        """把队列中的查询构建为 NDJSON 格式的多重搜索请求体."""
        lines: list[Any] = []
        for query, index, type in self._searches:
            header: dict[str, Any] = {}
            if index is not None:
                header["index"] = index
            if type is not None:
                header["type"] = type
            lines.append(header)
            lines.append(query)
        return self._serializer.dumps(lines).decode("utf-8")

    def multi_search(self) -> Any:
        """执行队列中的全部查询，并清空队列.

        Returns:
            响应数据，附带耗时 ``time`` 和请求体 ``request``
        """
        start_time = time.monotonic()
        request = self.build_multi_search_request()
        result = self.transport.multi_search(request)
        if isinstance(result, dict):
            result["time"] = time.monotonic() - start_time
            result["request"] = request
        self._searches = []
        return result

    # ============================================================
    # 批量写入
    # ============================================================

    def bulk(self, chunk_size: int | None = None) -> BulkBatcher:
        """创建绑定到当前索引/类型的批量写入工具.

        Args:
            chunk_size: 每个分块的操作数，默认使用配置中的 bulk_chunk_size

        Returns:
            BulkBatcher 实例
        """
        return BulkBatcher(
            self.transport,
            self.current_index,
            self.current_type,
            chunk_size=self.config.bulk_chunk_size if chunk_size is None else chunk_size,
            mirror=self.config.mirror_indexing,
            mirror_suffix=self.config.mirror_indexing_suffix,
        )

    # ============================================================
    # 生命周期管理
    # ============================================================

    def __enter__(self) -> ElasticClient:
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def close(self) -> None:
        """关闭底层连接."""
        self.transport.close()
