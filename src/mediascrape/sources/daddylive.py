"""daddylive: 24/7 频道网格。每个频道链接形如 ``/stream/stream-51.php``。"""

from __future__ import annotations

from mediascrape.cache import CATALOG, CacheDirective
from mediascrape.extractors.profiles import ExtractorProfile, PageKind, register_profile
from mediascrape.extractors.rules import ListRule, attr_of, text_of
from mediascrape.fetchers.html_headers import HeaderProfile

from .registry import SourceDefinition, register_source

NAME = "daddylive"


def channel_number(href: str) -> str | None:
    """"/stream/stream-51.php" -> "51"；链接中没有 "-" 时返回 None。"""
    parts = href.replace(".php", "").split("-")
    if len(parts) < 2:
        return None
    return parts[1] or None


register_profile(
    ExtractorProfile(
        source=NAME,
        kind=PageKind.CHANNELS,
        lists={
            "channels": ListRule(
                ".grid-item a",
                {
                    "name": (text_of(),),
                    "channel": (attr_of(None, "href", parse=channel_number),),
                },
                required=("name", "channel"),
            )
        },
    )
)

register_source(
    SourceDefinition(
        name=NAME,
        headers=HeaderProfile(
            user_agent=(
                "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
                "Chrome/91.0.4472.124 Safari/537.36"
            ),
        ),
        channels_path="24-7-channels.php",
        embed_path="embed/stream-{channel}.php",
        channels_directive=CacheDirective(max_age=3600, tier=CATALOG),
    )
)
