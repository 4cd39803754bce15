"""字段提取：提取规则、配置表、标识符规范化与分页解析。"""

from __future__ import annotations

from .canonical import canonicalize, raw_id_from_href
from .pagination import BOOTSTRAP_PAGER, WORDPRESS_PAGER, PagerRule, resolve_pagination
from .profiles import ExtractorProfile, Extraction, PageKind, apply_profile, get_profile, register_profile
from .rules import FieldRule, ListRule, Strategy, extract, extract_items

__all__ = [
    "BOOTSTRAP_PAGER",
    "ExtractorProfile",
    "Extraction",
    "FieldRule",
    "ListRule",
    "PageKind",
    "PagerRule",
    "Strategy",
    "WORDPRESS_PAGER",
    "apply_profile",
    "canonicalize",
    "extract",
    "extract_items",
    "get_profile",
    "raw_id_from_href",
    "register_profile",
    "resolve_pagination",
]
