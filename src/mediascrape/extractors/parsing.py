"""从自由文本中解析数字/日期等子字段的工具函数。

所有函数在匹配失败时返回 None，不抛出异常。
"""

from __future__ import annotations

import re
from datetime import datetime, timezone

_INT_RE = re.compile(r"^\s*([+-]?\d+)")
_EPISODES_RE = re.compile(r"Episodes:\s*(\d+)")
_DURATION_RE = re.compile(r"Duration:\s*([^\n<]+)")
_CONTENT_RATING_RE = re.compile(r"Content Rating:\s*([^\n<]+)")
_AIRS_RE = re.compile(r"Airs On:\s*([^\n<]+)")
_CHAPTER_COUNT_RE = re.compile(r"\((\d+) Chapters?\)", re.IGNORECASE)
_CHAPTER_NUMBER_RE = re.compile(r"(\d+)")

_MONTHS = {
    "jan": 1,
    "feb": 2,
    "mar": 3,
    "apr": 4,
    "may": 5,
    "jun": 6,
    "jul": 7,
    "aug": 8,
    "sep": 9,
    "oct": 10,
    "nov": 11,
    "dec": 12,
}


def match_group(pattern: re.Pattern[str], text: str | None) -> str | None:
    """返回第一个捕获组（去除首尾空白），未匹配或为空时返回 None。"""
    if not text:
        return None
    match = pattern.search(text)
    if not match:
        return None
    return match.group(1).strip() or None


def parse_int(text: str | None) -> int | None:
    """解析文本开头的整数（"12 min" -> 12），失败返回 None。"""
    if not text:
        return None
    match = _INT_RE.match(text)
    return int(match.group(1)) if match else None


def parse_episode_count(text: str | None) -> str | None:
    """"Episodes: 16" -> "16"。"""
    return match_group(_EPISODES_RE, text)


def parse_duration(text: str | None) -> str | None:
    """"Duration: 45 min." -> "45 min."。"""
    return match_group(_DURATION_RE, text)


def parse_content_rating(text: str | None) -> str | None:
    """"Content Rating: 15+ - Teens 15 or older" -> "15+ - Teens 15 or older"。"""
    return match_group(_CONTENT_RATING_RE, text)


def parse_airs(text: str | None) -> str | None:
    """"Airs On: Saturday, Sunday" -> "Saturday, Sunday"。"""
    return match_group(_AIRS_RE, text)


def parse_chapter_count(text: str | None) -> int | None:
    """"English (184 Chapters)" -> 184。"""
    value = match_group(_CHAPTER_COUNT_RE, text)
    return int(value) if value else None


def parse_episode_number(episode_id: str | None) -> int | None:
    """取 id 最后一个 "-" 之后的数字："drama-x-episode-12" -> 12。"""
    if not episode_id:
        return None
    return parse_int(episode_id.rsplit("-", 1)[-1])


def parse_chapter_number(name: str | None) -> int | None:
    """取章节名中的第一个数字："Chapter 1100: Luffy" -> 1100。"""
    value = match_group(_CHAPTER_NUMBER_RE, name)
    return int(value) if value else None


def parse_upload_date(text: str | None) -> str | None:
    """把 "Mar 05, 2024" 转换为 UTC 毫秒时间戳字符串。

    月份无法识别或日期不合法时返回 None。
    """
    if not text:
        return None

    parts = text.lower().replace(",", "", 1).split()
    if len(parts) < 3 or parts[0][:3] not in _MONTHS:
        return None

    day = parse_int(parts[1])
    year = parse_int(parts[2])
    if day is None or year is None:
        return None

    try:
        moment = datetime(year, _MONTHS[parts[0][:3]], day, tzinfo=timezone.utc)
    except ValueError:
        return None
    return str(int(moment.timestamp() * 1000))


def strip_label(label: str):
    """生成一个去掉固定前缀标签的解析函数，如 "Other name: "。"""

    def _strip(text: str) -> str | None:
        return text.replace(label, "", 1).strip() or None

    return _strip
