"""
Paystack 支付初始化

文档: https://paystack.com/docs/api/transaction/#initialize

购物车和购买人姓名作为 metadata 传给 Paystack，支付成功后会在 webhook 事件中原样回传。
"""
from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class PaystackError(Exception):
    """Paystack 返回 status=false 或请求失败"""


class PaystackClient:
    """Paystack API 客户端"""

    def __init__(
        self,
        *,
        secret_key: str | None,
        base_url: str = "https://api.paystack.co",
        callback_url: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Args:
            secret_key: Paystack secret key
            base_url: API 基础 URL
            callback_url: 支付完成后的前端跳转地址
            timeout: 请求超时（秒）
            transport: 自定义 httpx transport（测试用）
        """
        self.secret_key = secret_key
        self.base_url = base_url.rstrip("/")
        self.callback_url = callback_url
        self.timeout = timeout
        self._transport = transport

    def _headers(self) -> dict[str, str]:
        if not self.secret_key:
            raise PaystackError("PAYSTACK_SECRET_KEY not configured")
        return {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }

    async def initialize_transaction(
        self,
        *,
        email: str,
        name: str,
        amount: int,
        cart: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """
        初始化交易

        Args:
            email: 购买人邮箱
            name: 购买人姓名（写入 metadata.full_name）
            amount: 金额（最小货币单位）
            cart: 购物车（写入 metadata.cart）

        Returns:
            Paystack 响应中的 data（authorization_url、access_code、reference）

        Raises:
            PaystackError: Paystack 返回 status=false
            httpx.HTTPError: 网络错误
        """
        body: dict[str, Any] = {
            "email": email,
            "amount": amount,
            "metadata": {"full_name": name, "cart": cart},
        }
        if self.callback_url:
            body["callback_url"] = self.callback_url

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(
                f"{self.base_url}/transaction/initialize",
                headers=self._headers(),
                json=body,
            )

        try:
            data = response.json()
        except ValueError as e:
            logger.error(f"Paystack initialize error: {response.status_code} {response.text}")
            raise PaystackError(f"Invalid response from Paystack: {response.status_code}") from e

        if not isinstance(data, dict) or not data.get("status"):
            message = data.get("message") if isinstance(data, dict) else None
            logger.error(f"Paystack initialize rejected: {response.status_code} {message}")
            raise PaystackError(message or "Payment initialization failed")

        logger.info(f"Paystack transaction initialized for {email}")
        return data.get("data") or {}
