"""
抓取层测试

测试覆盖：
1. RequestsFetcher 成功 / 非 2xx / 超时 / 连接失败
2. TransportError 可重试判定
3. HeaderProfile 覆盖与请求头生成
"""

from __future__ import annotations

import pytest
import requests
import responses

from mediascrape.fetchers import DEFAULT_HEADERS, HeaderProfile, RequestsFetcher, SourceDocument, TransportError

# ============================================================
# RequestsFetcher 测试
# ============================================================


class TestRequestsFetcher:
    """RequestsFetcher 测试"""

    @responses.activate
    def test_fetch_success(self) -> None:
        """成功抓取返回 SourceDocument"""
        url = "https://example.com/page"
        responses.add(responses.GET, url, body="<html><body>ok</body></html>", status=200)

        result = RequestsFetcher(timeout=5).fetch(url, HeaderProfile())

        assert isinstance(result, SourceDocument)
        assert result.status == 200
        assert result.url == url
        assert "ok" in result.body

    @responses.activate
    def test_fetch_sends_profile_headers(self) -> None:
        """请求头来自站点配置"""
        url = "https://example.com/page"
        responses.add(responses.GET, url, body="ok", status=200)
        profile = HeaderProfile(user_agent="TestAgent/1.0", referer="https://example.com/")

        RequestsFetcher(timeout=5).fetch(url, profile)

        sent = responses.calls[0].request.headers
        assert sent["User-Agent"] == "TestAgent/1.0"
        assert sent["Referer"] == "https://example.com/"

    @responses.activate
    def test_fetch_http_error(self) -> None:
        """非 2xx 响应返回带状态码的 TransportError"""
        url = "https://example.com/missing"
        responses.add(responses.GET, url, status=404)

        result = RequestsFetcher(timeout=5).fetch(url, HeaderProfile())

        assert isinstance(result, TransportError)
        assert result.status == 404
        assert result.retryable is False

    @responses.activate
    def test_fetch_timeout(self) -> None:
        """超时返回 timed_out 的 TransportError"""
        url = "https://example.com/slow"
        responses.add(responses.GET, url, body=requests.exceptions.Timeout())

        result = RequestsFetcher(timeout=5).fetch(url, HeaderProfile())

        assert isinstance(result, TransportError)
        assert result.timed_out is True
        assert result.retryable is True

    @responses.activate
    def test_fetch_connection_error(self) -> None:
        """连接失败返回没有状态码的 TransportError"""
        url = "https://example.com/down"
        responses.add(responses.GET, url, body=requests.exceptions.ConnectionError("refused"))

        result = RequestsFetcher(timeout=5).fetch(url, HeaderProfile())

        assert isinstance(result, TransportError)
        assert result.status is None
        assert result.retryable is True
        assert "连接失败" in str(result)

    def test_invalid_timeout(self) -> None:
        """timeout 必须为正数"""
        with pytest.raises(ValueError):
            RequestsFetcher(timeout=0)


# ============================================================
# TransportError 测试
# ============================================================


class TestTransportError:
    """可重试判定"""

    @pytest.mark.parametrize("status", [429, 500, 502, 503])
    def test_retryable_status(self, status: int) -> None:
        assert TransportError(url="https://example.com", status=status).retryable is True

    @pytest.mark.parametrize("status", [400, 403, 404])
    def test_client_errors_not_retryable(self, status: int) -> None:
        assert TransportError(url="https://example.com", status=status).retryable is False

    def test_str(self) -> None:
        error = TransportError(url="https://example.com", status=503, reason="Service Unavailable")
        assert str(error) == "HTTP 503 Service Unavailable: https://example.com"


# ============================================================
# HeaderProfile 测试
# ============================================================


class TestHeaderProfile:
    """请求头配置"""

    def test_default_headers(self) -> None:
        headers = HeaderProfile().to_headers()

        assert headers["User-Agent"] == DEFAULT_HEADERS["User-Agent"]
        assert "Referer" not in headers

    def test_override(self) -> None:
        """配置覆盖只替换给出的字段，extra 合并"""
        base = HeaderProfile(referer="https://a.example/", extra={"X-One": "1"})

        profile = base.override({"user_agent": "Custom/2.0", "extra": {"X-Two": "2"}})

        assert profile.user_agent == "Custom/2.0"
        assert profile.referer == "https://a.example/"
        assert profile.extra == {"X-One": "1", "X-Two": "2"}
        # 原配置不变
        assert base.user_agent != "Custom/2.0"

    def test_override_empty_returns_self(self) -> None:
        base = HeaderProfile()
        assert base.override({}) is base

    def test_override_unknown_key(self) -> None:
        with pytest.raises(ValueError, match="cookie"):
            HeaderProfile().override({"cookie": "a=b"})

    def test_override_invalid_extra(self) -> None:
        with pytest.raises(ValueError):
            HeaderProfile().override({"extra": "X-Test: 1"})
