"""iptv: 公开的直播频道 JSON 数据集。

流地址变化频繁，放在易变缓存层；频道、分类、国家基本不变，放在目录缓存层，
两层各自过期，可以单独强制刷新。
"""

from __future__ import annotations

from mediascrape.cache import CATALOG, VOLATILE, CacheDirective

from .registry import JsonFeed, SourceDefinition, register_source

NAME = "iptv"

register_source(
    SourceDefinition(
        name=NAME,
        json_feeds={
            "streams": JsonFeed("streams.json", CacheDirective(max_age=7200, tier=VOLATILE)),
            "channels": JsonFeed("channels.json", CacheDirective(max_age=43200, tier=CATALOG)),
            "categories": JsonFeed("categories.json", CacheDirective(max_age=43200, tier=CATALOG)),
            "countries": JsonFeed("countries.json", CacheDirective(max_age=43200, tier=CATALOG)),
        },
    )
)
