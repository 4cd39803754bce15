"""引擎内部使用的异常类型。

这些异常只在引擎内部传播，公开操作的最外层会统一转换为带错误码的 EngineResult。
"""

from __future__ import annotations

from .fetchers.structs import TransportError


class RequestError(ValueError):
    """调用参数不合法（页码 < 1、缺少 id、未知过滤参数等）。"""


class UnknownSourceError(LookupError):
    """请求的上游站点未注册或未在配置中启用。"""


class UpstreamError(RuntimeError):
    """上游在重试后仍不可用。"""

    def __init__(self, error: TransportError) -> None:
        super().__init__(str(error))
        self.error = error


class ShapeCheckError(RuntimeError):
    """JSON 片段结构不符合预期。"""
