"""mediascrape: 第三方内容站点的提取与归一化引擎。"""

from .config import AppConfig, load_config
from .engine import EngineResult, ErrorCode, ScrapeEngine

__all__ = ["AppConfig", "EngineResult", "ErrorCode", "ScrapeEngine", "load_config"]
