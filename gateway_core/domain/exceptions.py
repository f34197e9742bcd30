"""统一业务异常模型。

所有跨模块抛出的业务级错误都继承自 BusinessError，
便于在服务层或 UI 层做统一捕获与用户提示。

流式解码中单行 JSON 解析失败（DecodeSkip）不是异常：
该行被跳过并记录 debug 日志，解码继续进行。
"""

from typing import Optional


class BusinessError(Exception):
    """业务异常基类。

    Attributes:
        code: 机器可读错误码（如 "API_ERROR"）。
        message: 用户可读错误信息。
        http_status: Provider 返回的 HTTP 状态码；网络层错误时为 None。
        extra: 其他补充字段（例如 operation、model 等）。
    """

    def __init__(self, code: str, message: str, http_status: Optional[int] = None, **extra):
        self.code = code
        self.message = message
        self.http_status = http_status
        self.extra = extra
        super().__init__(message)


class ConfigurationError(BusinessError):
    """发起调用时缺少必要配置（API key、base URL、模型 ID）。"""


class ProviderRequestError(BusinessError):
    """Provider 返回非 2xx 状态码，或请求在传输层失败。"""


class NetworkError(ProviderRequestError):
    """网络层错误，例如连接失败、超时、流中途断开等。"""


class RateLimitError(ProviderRequestError):
    """Provider 返回 429。核心层不做重试，由上层决定退避策略。"""


class MalformedResponseError(BusinessError):
    """2xx 响应但结构不符合预期（缺少 content / url 字段等）。"""
