"""标识符规范化：把单集 id 归并为剧集 id。"""

from __future__ import annotations

import re
from urllib.parse import urlparse

# 连续多个后缀一并去掉，保证幂等
_EPISODE_SUFFIX_RE = re.compile(r"(?:-episode-\d+)+$", re.IGNORECASE)


def canonicalize(raw_id: str) -> str:
    """去掉末尾的 ``-episode-<数字>`` 后缀。

    同一部剧的所有单集 id 都会得到相同的结果；没有后缀时原样返回。
    对任意字符串（包括空串）都有定义。

    >>> canonicalize("drama-x-episode-12")
    'drama-x'
    """
    return _EPISODE_SUFFIX_RE.sub("", raw_id)


def raw_id_from_href(href: str) -> str | None:
    """从链接中得到原始 id：取路径部分并去掉所有 "/"。

    "https://dramacool.sh/drama-x-episode-3/" -> "drama-x-episode-3"
    """
    path = urlparse(href.strip()).path
    return path.replace("/", "") or None


def path_tail(prefix: str):
    """生成一个取 ``prefix`` 之后路径片段的解析函数。

    path_tail("/manga/")("/manga/one-piece.dkw") -> "one-piece.dkw"
    """

    def _tail(href: str) -> str | None:
        path = urlparse(href.strip()).path
        if prefix in path:
            path = path.split(prefix, 1)[1]
        return path.strip("/") or None

    return _tail
