"""声明式字段提取规则。

一个字段规则（FieldRule）是按顺序尝试的策略（Strategy）元组，
第一个得到非空结果的策略胜出；全部落空时返回 None（列表字段返回 []），
单个字段缺失不会影响同一条目其他字段的提取。

用法::

    TITLE = (text_of("h3"),)
    IMAGE = (attr_of("img", "data-original"), attr_of("img", "src"))

    title = extract(node, TITLE)
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from bs4.element import Tag

from mediascrape.html_processor import node_text

logger = logging.getLogger(__name__)

Parser = Callable[[str], Any]


@dataclass(frozen=True)
class Strategy:
    """单个提取策略。

    Attributes:
        selector: CSS 选择器；None 表示当前节点本身
        attr: 读取的属性名；None 表示读取文本
        lines: 读取文本时保留行结构（供正则解析使用）
        many: 读取所有匹配节点，结果为列表
        parse: 对原始字符串的后处理，返回 None 视为未命中
    """

    selector: str | None = None
    attr: str | None = None
    lines: bool = False
    many: bool = False
    parse: Parser | None = None


FieldRule = tuple[Strategy, ...]


@dataclass(frozen=True)
class ListRule:
    """重复节点的提取规则（列表条目、剧集行、首页分区等）。

    Attributes:
        item_selector: 匹配每个条目节点的选择器
        fields: 字段名 -> FieldRule
        required: 缺失任一字段即丢弃该条目（视为装饰性标记）
        expect_items: 为 True 时，提取结果为空被视为可能的上游结构变化
    """

    item_selector: str
    fields: Mapping[str, FieldRule] = field(default_factory=dict)
    required: tuple[str, ...] = ()
    expect_items: bool = True


def text_of(selector: str | None = None, parse: Parser | None = None) -> Strategy:
    return Strategy(selector=selector, parse=parse)


def texts_of(selector: str, parse: Parser | None = None) -> Strategy:
    return Strategy(selector=selector, many=True, parse=parse)


def attr_of(selector: str | None, name: str, parse: Parser | None = None) -> Strategy:
    return Strategy(selector=selector, attr=name, parse=parse)


def lines_of(selector: str | None, parse: Parser) -> Strategy:
    return Strategy(selector=selector, lines=True, parse=parse)


def _is_empty(value: Any) -> bool:
    return value is None or value == "" or value == []


def _read(node: Tag, strategy: Strategy) -> Any:
    if strategy.attr:
        raw = node.get(strategy.attr)
        if isinstance(raw, list):
            raw = " ".join(raw)
        value: Any = raw.strip() if isinstance(raw, str) else None
    else:
        value = node_text(node, lines=strategy.lines)

    if _is_empty(value):
        return None
    if strategy.parse is not None:
        value = strategy.parse(value)
    return None if _is_empty(value) else value


def _apply(node: Tag, strategy: Strategy) -> Any:
    if strategy.many:
        targets = node.select(strategy.selector) if strategy.selector else [node]
        values = [_read(target, strategy) for target in targets]
        return [v for v in values if not _is_empty(v)]

    target = node.select_one(strategy.selector) if strategy.selector else node
    if target is None:
        return None
    return _read(target, strategy)


def extract(node: Tag, rule: FieldRule) -> Any:
    """按顺序尝试策略，返回第一个非空结果。

    标量字段全部落空时返回 None；列表字段（many=True）返回 []。
    """
    for strategy in rule:
        value = _apply(node, strategy)
        if not _is_empty(value):
            return value
    return [] if rule and rule[-1].many else None


def extract_fields(node: Tag, fields: Mapping[str, FieldRule]) -> dict[str, Any]:
    return {name: extract(node, rule) for name, rule in fields.items()}


def extract_items(node: Tag, rule: ListRule) -> list[dict[str, Any]]:
    """提取所有匹配条目，缺少必填字段的条目被静默丢弃。"""
    rows: list[dict[str, Any]] = []
    dropped = 0
    for item in node.select(rule.item_selector):
        row = extract_fields(item, rule.fields)
        if any(_is_empty(row.get(name)) for name in rule.required):
            dropped += 1
            continue
        rows.append(row)

    if dropped:
        logger.debug("丢弃 %d 个缺少必填字段的条目 (selector=%s)", dropped, rule.item_selector)
    return rows
