"""
API 请求/响应数据模型（Schema）

定义所有 API 接口的请求和响应数据结构，以及 Paystack webhook 事件结构。
使用 Pydantic 进行数据验证和序列化。

关键概念：
- webhook 事件只在签名校验通过后才解析（信任边界）
- 字段别名保持 Paystack / 前端的原始字段名（type、name、full_name）
- 这些模型不是数据库表，只用于数据交换
"""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field

# ============================================================
# 通用响应模型
# ============================================================


class ApiEnvelope(BaseModel):
    """
    API 统一响应格式

    - code: 状态码（0 表示成功，非 0 表示错误）
    - message: 消息（成功时为 "success"，错误时为错误描述）
    - data: 数据（成功时返回业务数据，错误时为 None）
    """
    code: int = 0
    message: str = "success"
    data: Any | None = None


# ============================================================
# 购物车 / Paystack 事件
# ============================================================


class CartLine(BaseModel):
    """
    购物车行

    线上格式：{"type": "regular", "quantity": 2, "name": "Regular Ticket"}
    数量必须是非负整数，不做类型转换。
    """
    model_config = ConfigDict(populate_by_name=True)

    ticket_type: str = Field(alias="type", min_length=1, max_length=64)
    quantity: int = Field(ge=0, strict=True)
    display_name: str = Field(alias="name", min_length=1, max_length=255)

    def to_inventory(self) -> dict[str, Any]:
        """购买记录中保存的明细格式"""
        return {"ticketType": self.ticket_type, "quantity": self.quantity, "name": self.display_name}


class WebhookEnvelope(BaseModel):
    """
    webhook 外层结构：{"event": "...", "data": {...}}

    data 在这里不做结构校验，只有支付成功事件才会按 ChargeData 解析。
    """
    event: str = Field(min_length=1)
    data: Any = None


class ChargeCustomer(BaseModel):
    email: str = Field(min_length=3, max_length=255)


class ChargeMetadata(BaseModel):
    """支付初始化时写入、由 Paystack 原样回传的元数据"""
    full_name: str = Field(min_length=1, max_length=255)
    cart: list[CartLine] = Field(default_factory=list)


class ChargeData(BaseModel):
    """charge.success 事件的 data 部分"""
    reference: str = Field(min_length=1, max_length=128)
    amount: int = Field(ge=0)  # 最小货币单位（kobo）
    customer: ChargeCustomer
    metadata: ChargeMetadata


class PaymentEvent(BaseModel):
    """
    校验后的支付事件

    由 WebhookEnvelope + ChargeData 组合而成，之后的流程只使用这个结构。
    """
    model_config = ConfigDict(frozen=True)

    event_type: str
    customer_email: str
    purchaser_name: str
    reference: str
    amount_minor_units: int
    cart: list[CartLine]

    @classmethod
    def from_charge(cls, event_type: str, charge: ChargeData) -> PaymentEvent:
        return cls(
            event_type=event_type,
            customer_email=charge.customer.email,
            purchaser_name=charge.metadata.full_name,
            reference=charge.reference,
            amount_minor_units=charge.amount,
            cart=charge.metadata.cart,
        )


# ============================================================
# 支付初始化
# ============================================================


class PaymentInitRequest(BaseModel):
    """
    支付初始化请求

    email、name、amount、cart 均为必填，cart 至少一行。
    """
    email: EmailStr = Field(max_length=255)
    name: str = Field(min_length=1, max_length=255)
    amount: int = Field(gt=0)  # 最小货币单位（kobo）
    cart: list[CartLine] = Field(min_length=1)


class WebhookAckData(BaseModel):
    """webhook 确认响应"""
    received: bool = True
    state: str
    reference: str | None = None
    tickets_sent: int = 0
    tickets_failed: int = 0
