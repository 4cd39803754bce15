"""分页解析。"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass

from bs4.element import Tag

from mediascrape.html_processor import node_text
from mediascrape.structs import PaginationState

from .parsing import match_group, parse_int

logger = logging.getLogger(__name__)

_PAGE_PARAM_RE = re.compile(r"[?&]page=(\d+)")


@dataclass(frozen=True)
class PagerRule:
    """分页标记的选择器规则。

    Attributes:
        next_selector: "下一页" 链接
        prev_selector: "上一页" 链接
        number_selector: 所有分页节点
        excluded_classes: 带有这些 class（节点自身或父级 li）的分页节点不参与最大页计算
        page_from_href: 最后一个节点文本不是数字时，尝试从 href 的 page= 参数读取页码
    """

    next_selector: str
    prev_selector: str
    number_selector: str
    excluded_classes: tuple[str, ...] = ("dots", "prev", "next", "current")
    page_from_href: bool = False


# WordPress 风格: <a class="page-numbers">2</a> <span class="page-numbers dots">…</span>
WORDPRESS_PAGER = PagerRule(
    next_selector=".pagination .next.page-numbers",
    prev_selector=".pagination .prev.page-numbers",
    number_selector=".pagination .page-numbers",
)

# Bootstrap 风格: <li class="page-item active"><span class="page-link">2</span></li>
BOOTSTRAP_PAGER = PagerRule(
    next_selector="li.page-item.active + li.page-item a.page-link",
    prev_selector="li.page-item:has(+ li.page-item.active) a.page-link",
    number_selector="li.page-item a.page-link",
    excluded_classes=("active", "disabled", "dots"),
    page_from_href=True,
)


def _has_href(document: Tag, selector: str) -> bool:
    node = document.select_one(selector)
    return bool(node is not None and str(node.get("href") or "").strip())


def _classes(node: Tag) -> set[str]:
    classes = set(node.get("class") or [])
    parent = node.parent
    if isinstance(parent, Tag) and parent.name == "li":
        classes.update(parent.get("class") or [])
    return classes


def resolve_pagination(document: Tag, rule: PagerRule = WORDPRESS_PAGER) -> PaginationState:
    """从分页标记推导上一页/下一页可用性与最大页数。

    最大页数取排除省略号、上一页、下一页、当前页标记后最后一个分页节点的数字文本；
    无法解析或不存在分页时为 1。
    """
    has_next = _has_href(document, rule.next_selector)
    has_prev = _has_href(document, rule.prev_selector)

    excluded = set(rule.excluded_classes)
    candidates = [node for node in document.select(rule.number_selector) if not (_classes(node) & excluded)]

    max_page: int | None = None
    if candidates:
        last = candidates[-1]
        max_page = parse_int(node_text(last))
        if max_page is None and rule.page_from_href:
            max_page = parse_int(match_group(_PAGE_PARAM_RE, str(last.get("href") or "")))

    if max_page is None or max_page < 1:
        max_page = 1

    return PaginationState(has_next=has_next, has_prev=has_prev, max_page=max_page)
