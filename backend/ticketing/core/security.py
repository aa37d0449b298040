"""
Webhook 签名校验模块

Paystack 会在每个 webhook 请求头 x-paystack-signature 中携带签名：
对原始请求体（未经解析的字节）使用账户 secret key 做 HMAC-SHA512，再转为十六进制。

这是 webhook 唯一的认证边界：签名不通过的事件一律视为伪造，
在解析请求体之前就拒绝。
"""
import hashlib
import hmac
import logging

logger = logging.getLogger(__name__)

SIGNATURE_HEADER = "x-paystack-signature"


def compute_signature(raw_body: bytes, secret: str) -> str:
    """计算请求体的 HMAC-SHA512 十六进制签名"""
    return hmac.new(secret.encode(), raw_body, hashlib.sha512).hexdigest()


def verify_signature(raw_body: bytes, provided_signature: str | None, secret: str | None) -> bool:
    """
    校验 webhook 签名

    必须使用原始请求体字节计算，先解析 JSON 再序列化会导致签名失效。

    Args:
        raw_body: 原始请求体
        provided_signature: 请求头中的签名
        secret: Paystack secret key

    Returns:
        签名一致返回 True；不一致、缺少签名或未配置密钥时返回 False（不抛异常）
    """
    if not secret:
        # 未配置密钥时一律拒绝
        logger.warning("Paystack secret key not configured, rejecting webhook")
        return False
    if not provided_signature:
        return False

    expected = compute_signature(raw_body, secret)
    return hmac.compare_digest(expected.encode(), provided_signature.encode())


class SignatureVerifier:
    """持有密钥的签名校验器，密钥在构造时注入"""

    def __init__(self, secret: str | None) -> None:
        self._secret = secret

    def verify(self, raw_body: bytes, provided_signature: str | None) -> bool:
        return verify_signature(raw_body, provided_signature, self._secret)
