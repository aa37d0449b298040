"""
自定义异常模块

定义应用特定的异常类，用于统一的错误处理。
所有业务异常都继承自 AppError，在 main.py 中有统一的异常处理器。

错误码约定：HTTP 状态码 * 1000 + 序号，例如 401001。
"""
from __future__ import annotations


class AppError(Exception):
    """
    应用自定义异常类

    - code: 业务错误码
    - message: 错误消息
    - status_code: HTTP 状态码

    使用示例：
        raise AppError(code=400201, message="Email, name, amount, and cart are required.")
    """

    def __init__(self, *, code: int, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


def invalid_signature() -> AppError:
    """webhook 签名校验失败"""
    return AppError(code=401001, message="Invalid signature", status_code=401)


def malformed_event() -> AppError:
    """签名通过但事件结构非法"""
    return AppError(code=400101, message="Malformed webhook event", status_code=400)


def missing_payment_fields() -> AppError:
    return AppError(
        code=400201,
        message="Email, name, amount, and cart are required.",
        status_code=400,
    )


def payment_init_failed(message: str | None = None) -> AppError:
    """Paystack 初始化失败；未提供原因时返回通用错误信息"""
    return AppError(
        code=500201,
        message=message or "An internal server error occurred.",
        status_code=500,
    )


def database_unavailable() -> AppError:
    return AppError(code=503001, message="Database unavailable", status_code=503)
