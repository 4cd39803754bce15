from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from mediascrape.config import load_config
from mediascrape.engine import EngineResult, ScrapeEngine


def _parse_filters(pairs: list[str] | None) -> dict[str, list[str]]:
    """``--filter genre=1 --filter genre=5`` -> ``{"genre": ["1", "5"]}``。"""
    filters: dict[str, list[str]] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise argparse.ArgumentTypeError(f"过滤参数格式应为 key=value: {pair}")
        filters.setdefault(key, []).append(value)
    return filters


def _flatten(filters: dict[str, list[str]]) -> dict[str, object]:
    # 只有题材允许多值
    return {key: values if key in ("genre", "genres") else values[-1] for key, values in filters.items()}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mediascrape", description="内容站点提取与归一化引擎")
    parser.add_argument(
        "--config",
        type=str,
        default="config.yaml",
        help="配置文件路径（默认: config.yaml）",
    )
    sub = parser.add_subparsers(dest="command", required=True)

    listing = sub.add_parser("listing", help="列表页")
    listing.add_argument("source")
    listing.add_argument("--feed", default=None, help="列表端点，如 latest / popular / discover")
    listing.add_argument("--page", type=int, default=1)
    listing.add_argument("--filter", action="append", dest="filters", metavar="KEY=VALUE")

    pages = sub.add_parser("pages", help="并发抓取多个列表页")
    pages.add_argument("source")
    pages.add_argument("pages", type=int, nargs="+")
    pages.add_argument("--feed", default=None)
    pages.add_argument("--filter", action="append", dest="filters", metavar="KEY=VALUE")

    detail = sub.add_parser("detail", help="作品详情")
    detail.add_argument("source")
    detail.add_argument("id")

    search = sub.add_parser("search", help="搜索")
    search.add_argument("source")
    search.add_argument("query")
    search.add_argument("--page", type=int, default=1)
    search.add_argument("--filter", action="append", dest="filters", metavar="KEY=VALUE")

    home = sub.add_parser("home", help="首页分区")
    home.add_argument("source")

    chapters = sub.add_parser("chapters", help="章节列表")
    chapters.add_argument("source")
    chapters.add_argument("id")
    chapters.add_argument("--lang", default=None)

    chapter_pages = sub.add_parser("chapter-pages", help="章节图片")
    chapter_pages.add_argument("source")
    chapter_pages.add_argument("url")

    filters = sub.add_parser("filters", help="过滤项")
    filters.add_argument("source")

    live_tv = sub.add_parser("live-tv", help="直播频道聚合")
    live_tv.add_argument("--source", default="iptv")
    live_tv.add_argument("--force-catalog", action="store_true", help="强制刷新频道/分类/国家目录")

    channels = sub.add_parser("channels", help="24/7 频道网格")
    channels.add_argument("--source", default="daddylive")

    return parser


async def run(engine: ScrapeEngine, args: argparse.Namespace) -> EngineResult:
    filters = args.filter_map

    if args.command == "listing":
        return await engine.listing(args.source, args.page, filters, feed=args.feed)
    if args.command == "pages":
        return await engine.listing_pages(args.source, args.pages, filters, feed=args.feed)
    if args.command == "detail":
        return await engine.detail(args.source, args.id)
    if args.command == "search":
        return await engine.search(args.source, args.query, args.page, filters)
    if args.command == "home":
        return await engine.home(args.source)
    if args.command == "chapters":
        return await engine.chapters(args.source, args.id, args.lang)
    if args.command == "chapter-pages":
        return await engine.chapter_pages(args.source, args.url)
    if args.command == "filters":
        return await engine.filters(args.source)
    if args.command == "live-tv":
        return await engine.live_tv(args.source, force_catalog=args.force_catalog)
    if args.command == "channels":
        return await engine.channels(args.source)
    raise ValueError(f"未知命令: {args.command}")


async def _main(config_path: Path, args: argparse.Namespace) -> EngineResult:
    config = load_config(config_path)
    logging.getLogger().setLevel(config.log_level)
    async with ScrapeEngine(config) as engine:
        return await run(engine, args)


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        stream=sys.stderr,
    )

    try:
        args.filter_map = _flatten(_parse_filters(getattr(args, "filters", None)))
    except argparse.ArgumentTypeError as exc:
        parser.error(str(exc))

    result = asyncio.run(_main(Path(args.config), args))

    print(result.to_json(indent=2))
    return 0 if result.success else 1


if __name__ == "__main__":
    sys.exit(main())
