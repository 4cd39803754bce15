"""上游站点定义包。"""

# 自动导入子模块以触发注册
from . import daddylive, dramacool, iptv, mangafire  # noqa: F401
from .registry import ChapterEndpoints, Feed, JsonFeed, SourceDefinition, available_sources, get_source

__all__ = ["ChapterEndpoints", "Feed", "JsonFeed", "SourceDefinition", "available_sources", "get_source"]
