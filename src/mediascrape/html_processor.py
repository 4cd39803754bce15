"""HTML 解析：把原始响应体转换为可用 CSS 选择器查询的文档树。"""

from __future__ import annotations

import logging
from urllib.parse import urljoin, urlparse

from bs4 import BeautifulSoup
from bs4.element import Tag

logger = logging.getLogger(__name__)

# 上游页面经常包含不规范的标记，html.parser 对残缺输入最宽容
_PARSER = "html.parser"


def parse_document(raw: str | bytes | None) -> BeautifulSoup:
    """解析 HTML，任何输入都返回可查询的文档。

    空输入或无法解析的输入返回一个空文档而不是抛出异常，
    后续提取会得到空结果。

    Args:
        raw: 响应正文，bytes 会按 UTF-8 解码（非法字节替换）

    Returns:
        BeautifulSoup 文档对象
    """
    if not raw:
        return BeautifulSoup("", _PARSER)

    if isinstance(raw, bytes):
        raw = raw.decode("utf-8", errors="replace")

    try:
        return BeautifulSoup(raw, _PARSER)
    except Exception as exc:  # noqa: BLE001 - 解析失败按空文档处理
        logger.warning("HTML 解析失败, 按空文档处理: %s (长度: %d)", exc, len(raw))
        return BeautifulSoup("", _PARSER)


def clean_text(value: str) -> str:
    """合并连续空白并去除首尾空白。"""
    return " ".join(value.split())


def node_text(node: Tag, *, lines: bool = False) -> str:
    """读取节点文本。

    Args:
        node: 文档节点
        lines: 为 True 时按标签边界换行，保留行结构以供正则匹配
    """
    if lines:
        return node.get_text("\n").strip()
    return clean_text(node.get_text())


def absolute_url(base_url: str, maybe_url: str | None) -> str | None:
    """将相对链接转换为绝对链接；空值原样返回 None。"""
    if not maybe_url:
        return None
    if maybe_url.startswith("//"):
        return f"https:{maybe_url}"
    if urlparse(maybe_url).scheme:
        return maybe_url
    return urljoin(base_url, maybe_url)
