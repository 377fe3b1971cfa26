"""
自定义异常模块

定义应用特定的异常类，用于统一的错误处理。
所有业务异常都继承自 AppError，在 main.py 中有统一的异常处理器。
"""
from __future__ import annotations


class AppError(Exception):
    """
    应用自定义异常类

    用于业务逻辑中的错误处理，包含：
    - code: 业务错误码（用于前端区分不同错误）
    - message: 错误消息
    - status_code: HTTP 状态码（400, 404, 500 等）

    使用示例：
        raise AppError(code=404001, message="User not found", status_code=404)
    """

    def __init__(self, *, code: int, message: str, status_code: int = 400) -> None:
        super().__init__(message)
        self.code = code
        self.message = message
        self.status_code = status_code


class SignatureMissing(AppError):
    """
    请求缺少 Stripe-Signature 头

    说明请求不是 Stripe 发出的，在解析请求体之前就拒绝（403）。
    """

    def __init__(self) -> None:
        super().__init__(code=403001, message="forbidden", status_code=403)


class SignatureInvalid(AppError):
    """签名与原始请求体不匹配、签名头格式错误或请求体无法解析（400）"""

    def __init__(self, message: str = "bad signature") -> None:
        super().__init__(code=400101, message=message, status_code=400)


def missing_id_token() -> AppError:
    return AppError(code=400001, message="missing idToken", status_code=400)


def invalid_id_token() -> AppError:
    """LINE ID Token 校验失败"""
    return AppError(code=401001, message="invalid_token", status_code=401)


def user_not_found() -> AppError:
    return AppError(code=404001, message="user not found", status_code=404)
