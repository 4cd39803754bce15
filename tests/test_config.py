"""配置加载测试"""

from __future__ import annotations

from pathlib import Path

import pytest

from mediascrape.config import load_config


def _write(tmp_path: Path, content: str) -> Path:
    path = tmp_path / "config.yaml"
    path.write_text(content, encoding="utf-8")
    return path


class TestLoadConfig:
    """load_config 测试"""

    def test_load_sample(self, sample_config_path: Path) -> None:
        config = load_config(sample_config_path)

        assert config.log_level == "DEBUG"
        assert config.http.timeout == 10
        assert config.http.verify_ssl is False
        assert config.http.retry_backoff == 0.2
        assert config.cache.volatile_ttl == 600
        assert config.cache.catalog_ttl == 43200
        assert set(config.sources) == {"dramacool", "mangafire"}

        dramacool = config.sources["dramacool"]
        assert dramacool.base_url == "https://dramacool.sh"
        assert dramacool.headers["extra"] == {"X-Test": "1"}

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "nope.yaml")

    def test_missing_sources(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="sources"):
            load_config(_write(tmp_path, "http:\n  timeout: 5\n"))

    def test_missing_base_url(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="base_url"):
            load_config(_write(tmp_path, "sources:\n  dramacool:\n    headers: {}\n"))

    def test_base_url_scheme(self, tmp_path: Path) -> None:
        with pytest.raises(ValueError, match="http"):
            load_config(_write(tmp_path, "sources:\n  dramacool:\n    base_url: dramacool.sh\n"))

    def test_unknown_header_key(self, tmp_path: Path) -> None:
        content = "sources:\n  dramacool:\n    base_url: https://dramacool.sh\n    headers:\n      cookie: a=b\n"
        with pytest.raises(ValueError, match="cookie"):
            load_config(_write(tmp_path, content))

    @pytest.mark.parametrize(
        "section",
        [
            "http:\n  timeout: 0\n",
            "http:\n  max_workers: 0\n",
            "cache:\n  catalog_ttl: -1\n",
            "log_level: verbose\n",
        ],
    )
    def test_invalid_values(self, tmp_path: Path, section: str) -> None:
        content = section + "sources:\n  iptv:\n    base_url: https://iptv-org.github.io/api\n"
        with pytest.raises(ValueError):
            load_config(_write(tmp_path, content))

    def test_defaults(self, tmp_path: Path) -> None:
        config = load_config(_write(tmp_path, "sources:\n  iptv:\n    base_url: https://iptv-org.github.io/api/\n"))

        assert config.log_level == "INFO"
        assert config.http.timeout == 15
        assert config.http.verify_ssl is True
        assert config.sources["iptv"].base_url == "https://iptv-org.github.io/api"
