"""
elasticrelay 工具函数模块

提供资源路径构建相关的工具函数
"""

from collections.abc import Sequence
from typing import Any
from urllib.parse import urlencode


def _query_value(value: Any) -> Any:
    """将查询参数值转换为 URL 中使用的形式."""
    if isinstance(value, bool):
        # 与 ES 的布尔参数保持一致
        return "true" if value else "false"
    return value


def _is_empty_segment(segment: Any) -> bool:
    # 文档 ID 可以是 0，不能按真值过滤
    return segment is None or segment is False or segment == ""


def join_names(value: str | Sequence[str] | None) -> str | None:
    """将索引名或类型名列表用逗号连接，忽略空值.

    示例:
        >>> join_names(["a", "", "b"])
        'a,b'
        >>> join_names("logs")
        'logs'
    """
    if value is None or isinstance(value, str):
        return value
    return ",".join(str(v) for v in value if v)


def build_path(
    path: str | Sequence[Any] | None = None,
    options: dict[str, Any] | None = None,
    index: str | None = None,
) -> str:
    r"""
    构建资源路径。

    path 以 "/" 开头的字符串视为绝对路径，原样使用；否则视为相对路径片段，
    拼接在 index 之下。空片段会被丢弃，末尾的单个 "/" 会被去掉，
    options 非空时作为查询字符串追加。

    该函数没有副作用，相同的输入总是得到相同的输出。

    示例:
        >>> build_path(["doc", "1"], index="users")
        '/users/doc/1'
        >>> build_path("/_msearch")
        '/_msearch'
        >>> build_path(["doc", None], {"refresh": True}, index="users")
        '/users/doc?refresh=true'

    Args:
        path: 绝对路径字符串，或相对路径片段（字符串或列表）
        options: 查询参数
        index: 当前选中的索引名

    Returns:
        以 "/" 开头的资源路径
    """
    if isinstance(path, str):
        segments: list[Any] = [path]
    elif path:
        segments = list(path)
    else:
        segments = []

    parts = [str(s) for s in segments if not _is_empty_segment(s)]

    if parts and parts[0].startswith("/"):
        url = "/".join(parts)
    else:
        url = "/" + (index or "")
        if parts:
            url += "/" + "/".join(parts)

    if len(url) > 1 and url.endswith("/"):
        url = url[:-1]

    if options:
        url += "?" + urlencode({k: _query_value(v) for k, v in options.items()})
    return url
