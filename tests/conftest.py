"""共享测试 fixtures 和配置。"""

from __future__ import annotations

import threading
import time
from pathlib import Path

import pytest

from mediascrape.config import AppConfig, CacheConfig, HttpConfig, SourceConfig
from mediascrape.fetchers import BaseFetcher, HeaderProfile, SourceDocument, TransportError

DRAMACOOL = "https://dramacool.sh"
MANGAFIRE = "https://mangafire.to"
DADDYLIVE = "https://daddylive.mp"
IPTV = "https://iptv-org.github.io/api"


# ============================================================
# 抓取器替身
# ============================================================


StubResponse = str | int | TransportError


class StubFetcher(BaseFetcher):
    """按 URL 返回预置响应的抓取器，记录所有调用。

    - str: 200 响应正文
    - int: 对应状态码的 TransportError
    - TransportError: 原样返回

    同一 URL 注册多个响应时按顺序消费，最后一个响应会一直重复。
    未注册的 URL 返回 404。
    """

    def __init__(self, routes: dict[str, StubResponse] | None = None, *, delay: float = 0.0) -> None:
        super().__init__(timeout=5)
        self.routes: dict[str, list[StubResponse]] = {}
        self.calls: list[str] = []
        self.profiles: list[HeaderProfile] = []
        self.delay = delay
        self._lock = threading.Lock()
        for url, response in (routes or {}).items():
            self.add(url, response)

    def add(self, url: str, *responses: StubResponse) -> None:
        self.routes.setdefault(url, []).extend(responses)

    def count(self, url: str) -> int:
        return self.calls.count(url)

    def fetch(self, url: str, profile: HeaderProfile) -> SourceDocument | TransportError:
        with self._lock:
            self.calls.append(url)
            self.profiles.append(profile)
            queue = self.routes.get(url)
            if not queue:
                response: StubResponse = 404
            elif len(queue) > 1:
                response = queue.pop(0)
            else:
                response = queue[0]

        if self.delay:
            time.sleep(self.delay)

        if isinstance(response, TransportError):
            return response
        if isinstance(response, int):
            return TransportError(url=url, status=response, reason="stub")
        return SourceDocument(url=url, final_url=url, status=200, body=response)


@pytest.fixture
def stub_fetcher() -> StubFetcher:
    """创建空的抓取器替身。"""
    return StubFetcher()


# ============================================================
# 配置相关 Fixtures
# ============================================================


@pytest.fixture
def sample_http_config() -> HttpConfig:
    """创建测试用 HTTP 配置（不等待重试）。"""
    return HttpConfig(timeout=5, verify_ssl=True, retry_backoff=0.0, max_workers=4)


@pytest.fixture
def sample_app_config(sample_http_config: HttpConfig) -> AppConfig:
    """创建启用全部站点的测试用应用配置。"""
    return AppConfig(
        sources={
            "dramacool": SourceConfig(name="dramacool", base_url=DRAMACOOL),
            "mangafire": SourceConfig(name="mangafire", base_url=MANGAFIRE),
            "daddylive": SourceConfig(name="daddylive", base_url=DADDYLIVE),
            "iptv": SourceConfig(name="iptv", base_url=IPTV),
        },
        http=sample_http_config,
        cache=CacheConfig(volatile_ttl=7200, catalog_ttl=43200),
    )


@pytest.fixture
def sample_config_path(tmp_path: Path) -> Path:
    """创建临时测试配置文件并返回路径。"""
    config_content = """
log_level: debug

http:
  timeout: 10
  verify_ssl: false
  retry_backoff: 0.2

cache:
  volatile_ttl: 600

sources:
  dramacool:
    base_url: "https://dramacool.sh/"
    headers:
      referer: "https://dramacool.sh/"
      extra:
        X-Test: "1"
  mangafire:
    base_url: "https://mangafire.to"
"""
    config_path = tmp_path / "test_config.yaml"
    config_path.write_text(config_content, encoding="utf-8")
    return config_path


# ============================================================
# dramacool HTML Fixtures
# ============================================================


def _wordpress_pager(current: int, last: int, query: str = "") -> str:
    links = []
    if current > 1:
        links.append(f'<a class="prev page-numbers" href="/page/{current - 1}/{query}">Prev</a>')
    dots = False
    for number in range(1, last + 1):
        if number == current:
            links.append(f'<span aria-current="page" class="page-numbers current">{number}</span>')
        elif number in (1, last) or abs(number - current) == 1:
            links.append(f'<a class="page-numbers" href="/page/{number}/{query}">{number}</a>')
            dots = False
        elif not dots:
            links.append('<span class="page-numbers dots">&hellip;</span>')
            dots = True
    if current < last:
        links.append(f'<a class="next page-numbers" href="/page/{current + 1}/{query}">Next</a>')
    return f'<div class="pagination">{"".join(links)}</div>'


@pytest.fixture
def dramacool_listing_html() -> str:
    """3 个条目节点，其中一个没有标题。"""
    return f"""
<html><body>
<div id="primary">
  <ul class="box">
    <li>
      <a href="https://dramacool.sh/moon-lovers-episode-12/">
        <img data-original="https://img.example/moon.jpg" src="/placeholder.png">
        <h3>Moon Lovers</h3>
      </a>
      <span class="ep">EP 12</span>
      <span class="time">2 hours ago</span>
    </li>
    <li>
      <a href="https://dramacool.sh/queen-of-tears-episode-3/">
        <img src="/covers/queen.jpg">
        <h3>Queen of Tears</h3>
      </a>
      <span class="ep">EP 3</span>
    </li>
    <li>
      <a href="https://dramacool.sh/ad-slot/"><img src="/ads/banner.png"></a>
    </li>
  </ul>
</div>
{_wordpress_pager(1, 5)}
</body></html>
"""


@pytest.fixture
def dramacool_search_html() -> str:
    """搜索 "moon" 第 2 页：24 个结果，分页最后一个数字为 9。"""
    items = "\n".join(
        f"""
    <li>
      <a href="https://dramacool.sh/moon-{n}/"><img data-original="https://img.example/moon-{n}.jpg"></a>
      <h2><a href="https://dramacool.sh/moon-{n}/">Moon Story {n}</a></h2>
      <p class="post-info"><strong>Release Year:</strong> <a href="/year/20{n:02d}/">20{n:02d}</a></p>
      <p>Synopsis of moon story {n}.</p>
    </li>"""
        for n in range(1, 25)
    )
    return f"""
<html><body>
<main id="main" class="site-main wrapper">
  <ul class="list-thumb">{items}
  </ul>
  {_wordpress_pager(2, 9, "?s=moon")}
</main>
</body></html>
"""


@pytest.fixture
def dramacool_empty_search_html() -> str:
    """确实没有结果的搜索页。"""
    return """
<html><body>
<main id="main" class="site-main wrapper">
  <section class="no-results not-found"><h1>Nothing Found</h1></section>
</main>
</body></html>
"""


def _dramacool_detail(episode_line: str) -> str:
    return f"""
<html><body>
<div id="drama-details">
  <div class="entry-header"><h1>Moon Lovers</h1></div>
  <div class="drama-thumbnail"><img src="https://img.example/moon-lovers.jpg"></div>
  <div class="synopsis">
    <p class="aka">Other name: Scarlet Heart: Ryeo</p>
    <p class="synopsis">A woman is transported back in time to the Goryeo dynasty.</p>
    {episode_line}
    <p><strong>Duration:</strong> 60 min.</p>
    <p><strong>Content Rating:</strong> 15+ - Teens 15 or older</p>
    <p><strong>Airs On:</strong> Monday, Tuesday</p>
  </div>
  <p class="country"><strong>Country:</strong> <a href="/country/korean/">South Korea</a></p>
  <p class="status"><strong>Status:</strong> <a href="/status/completed/">Completed</a></p>
  <p class="release-year"><strong>Released:</strong> <a href="/year/2016/">2016</a></p>
  <p class="genres"><a href="/genre/romance/">Romance</a> <a href="/genre/historical/">Historical</a></p>
  <p class="starring"><a href="/star/iu/">IU</a> <a href="/star/lee-joon-gi/">Lee Joon Gi</a></p>
  <div class="trailer"><iframe src="https://www.youtube.com/embed/abc"></iframe></div>
</div>
<div id="episode-list">
  <ul class="episode-list">
    <li><h3><a href="https://dramacool.sh/moon-lovers-episode-2/">Moon Lovers Episode 2</a></h3><span class="time">2016-09-06</span></li>
    <li><h3><a href="https://dramacool.sh/moon-lovers-episode-1/">Moon Lovers Episode 1</a></h3><span class="time">2016-08-29</span></li>
    <li><h3><a href="https://dramacool.sh/moon-lovers-episode-1/">Moon Lovers Episode 1</a></h3><span class="time">2016-08-29</span></li>
  </ul>
</div>
</body></html>
"""


@pytest.fixture
def dramacool_detail_html() -> str:
    """简介中包含 "Episodes: 16"，剧集列表中有一个重复链接。"""
    return _dramacool_detail("<p><strong>Episodes:</strong> 16</p>")


@pytest.fixture
def dramacool_detail_without_count_html() -> str:
    """简介中没有集数。"""
    return _dramacool_detail("")


@pytest.fixture
def dramacool_home_html() -> str:
    """首页：包含最近更新、电影、热门等分区。"""
    return """
<html><body>
<div id="drama"><ul class="box">
  <li><a href="https://dramacool.sh/lovely-runner-episode-16/"><img data-src="https://img.example/lr.jpg"><h3>Lovely Runner</h3></a>
      <span class="ep">EP 16</span><span class="time">1 hour ago</span></li>
</ul></div>
<div id="movie"><ul class="box">
  <li><a href="https://dramacool.sh/exhuma/"><img src="https://img.example/exhuma.jpg"><h3>Exhuma</h3></a></li>
</ul></div>
<div id="kshow"><ul class="box"></ul></div>
<div id="popular"><ul class="short-list">
  <li><h3><a href="https://dramacool.sh/the-8-show-episode-4/">The 8 Show</a></h3></li>
</ul></div>
<div id="upcoming"><ul class="short-list"></ul></div>
<div class="popular-mob"><ul class="widget-list">
  <li><h3><a href="https://dramacool.sh/queen-of-tears/">Queen of Tears</a></h3></li>
</ul></div>
</body></html>
"""


# ============================================================
# mangafire HTML / JSON Fixtures
# ============================================================


@pytest.fixture
def mangafire_listing_html() -> str:
    """Bootstrap 风格分页，最后一页只能从 href 读取。"""
    return """
<html><body>
<div class="original card-lg">
  <div class="unit item-1">
    <div class="inner">
      <a href="/manga/one-piece.dkw" class="poster"><div><img src="https://static.example/op.jpg"></div></a>
      <div class="info">
        <span class="type">Manga</span>
        <a href="/manga/one-piece.dkw">One Piece</a>
      </div>
    </div>
  </div>
  <div class="unit item-2">
    <div class="inner">
      <a href="/manga/solo-leveling.y9kx" class="poster"><div><img src="https://static.example/sl.jpg"></div></a>
      <div class="info">
        <span class="type">Manhwa</span>
        <a href="/manga/solo-leveling.y9kx">Solo Leveling</a>
      </div>
    </div>
  </div>
</div>
<ul class="pagination">
  <li class="page-item disabled"><span class="page-link">&laquo;</span></li>
  <li class="page-item active"><span class="page-link">1</span></li>
  <li class="page-item"><a class="page-link" href="/filter?keyword=&page=2">2</a></li>
  <li class="page-item"><a class="page-link" href="/filter?keyword=&page=3">3</a></li>
  <li class="page-item"><a class="page-link" href="/filter?keyword=&page=250">&raquo;</a></li>
</ul>
</body></html>
"""


@pytest.fixture
def mangafire_detail_html() -> str:
    return """
<html><body>
<div class="manga-detail">
  <div class="poster"><div><img src="https://static.example/op-large.jpg"></div></div>
  <div class="info">
    <p>Releasing</p>
    <h1>One Piece</h1>
  </div>
  <div id="synopsis">Gol D. Roger was known as the Pirate King.</div>
  <div class="dropdown responsive">
    <div class="dropdown-menu">
      <a class="dropdown-item" data-code="EN" data-title="English">English (1110 Chapters)</a>
      <a class="dropdown-item" data-code="FR" data-title="French">French (1098 Chapters)</a>
      <a class="dropdown-item" data-code="ES" data-title="Spanish">Spanish</a>
    </div>
  </div>
</div>
<aside class="sidebar">
  <div class="meta">
    <div><span>Author:</span> <a href="/author/oda">Oda Eiichiro</a></div>
    <div><span>Published:</span> Jul 22, 1997</div>
    <div><span>Genres:</span> <a href="/genre/action">Action</a>, <a href="/genre/adventure">Adventure</a></div>
  </div>
</aside>
<section class="side-manga">
  <div class="body">
    <a class="unit" href="/manga/naruto.3k2">
      <div class="poster"><img src="https://static.example/naruto.jpg"></div>
      <div class="info"><h6>Naruto</h6><span>Chap 700</span><span>Vol 72</span></div>
    </a>
  </div>
</section>
</body></html>
"""


@pytest.fixture
def mangafire_chapter_ids_json() -> str:
    return (
        '{"status": 200, "result": {"html": "'
        '<ul><li><a href=\\"#\\" data-id=\\"3003\\">Chapter 1110: The Holy Knight</a></li>'
        '<li><a href=\\"#\\" data-id=\\"3002\\">Chapter 1109</a></li></ul>"}}'
    )


@pytest.fixture
def mangafire_chapter_meta_json() -> str:
    return (
        '{"status": 200, "result": "'
        '<ul class=\\"scroll-sm\\">'
        '<li><a title=\\"TCB Scans - Chapter 1110\\" href=\\"#\\"><span>Chapter 1110</span><span>Mar 05, 2024</span></a></li>'
        '<li><a title=\\"Chapter 1109\\" href=\\"#\\"><span>Chapter 1109</span><span>Feb 25, 2024</span></a></li>'
        '</ul>"}'
    )


# ============================================================
# 其他站点 Fixtures
# ============================================================


@pytest.fixture
def daddylive_channels_html() -> str:
    return """
<html><body>
<div class="grid-container">
  <div class="grid-item"><a href="/stream/stream-51.php"><strong>ABC USA</strong></a></div>
  <div class="grid-item"><a href="/stream/stream-44.php"><strong>ESPN</strong></a></div>
  <div class="grid-item"><a href="/schedule.php"><strong>Schedule</strong></a></div>
</div>
</body></html>
"""


# ============================================================
# Pytest Hooks
# ============================================================


def pytest_addoption(parser: pytest.Parser) -> None:
    """注册 --run-functional 选项，用于控制真实功能测试执行。"""
    parser.addoption(
        "--run-functional",
        action="store_true",
        default=False,
        help="运行带 functional 标记的真实功能测试，默认跳过以避免访问上游站点",
    )


def pytest_configure(config: pytest.Config) -> None:
    """注册 pytest 标记。"""
    config.addinivalue_line(
        "markers",
        "functional: 需要访问真实上游站点的功能测试",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    """默认跳过 functional 测试，除非显式传入 --run-functional。"""
    if config.getoption("--run-functional"):
        return

    skip_marker = pytest.mark.skip(reason="缺少 --run-functional，因此跳过真实功能测试")
    for item in items:
        if "functional" in item.keywords:
            item.add_marker(skip_marker)
