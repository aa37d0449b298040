"""
Paystack 路由模块

- POST /paystack/initialize: 初始化支付，返回 Paystack 支付跳转信息
- POST /paystack/webhook: 接收 Paystack 事件，校验签名后出票

webhook 必须读取原始请求体做签名校验，所以这里不声明请求体模型。
"""
from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi import APIRouter, Body, Header, Request
from pydantic import ValidationError

from ticketing.api.deps import FulfillmentDep, PaystackDep
from ticketing.api.errors import (
    invalid_signature,
    malformed_event,
    missing_payment_fields,
    payment_init_failed,
)
from ticketing.api.schemas import ApiEnvelope, PaymentInitRequest, WebhookAckData
from ticketing.enums import FulfillmentState
from ticketing.integrations.paystack import PaystackError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/paystack", tags=["paystack"])


@router.post("/initialize", response_model=ApiEnvelope)
async def initialize_payment(
    client: PaystackDep,
    payload: dict[str, Any] | None = Body(default=None),
) -> ApiEnvelope:
    """
    初始化支付

    请求路径: POST /api/v1/paystack/initialize

    请求体：{email, name, amount, cart}，cart 行格式 {type, quantity, name}。
    cart 与 name 作为 metadata 交给 Paystack，在 webhook 中原样回传。

    Raises:
        AppError: 字段缺失（400201）或 Paystack 初始化失败（500201）
    """
    try:
        body = PaymentInitRequest.model_validate(payload or {})
    except ValidationError:
        raise missing_payment_fields()

    try:
        data = await client.initialize_transaction(
            email=body.email,
            name=body.name,
            amount=body.amount,
            cart=[line.model_dump(by_alias=True) for line in body.cart],
        )
    except PaystackError as e:
        raise payment_init_failed(str(e))
    except httpx.HTTPError as e:
        logger.error(f"Paystack request failed: {e}")
        raise payment_init_failed()

    return ApiEnvelope(data=data)


@router.post("/webhook", response_model=ApiEnvelope)
async def paystack_webhook(
    request: Request,
    service: FulfillmentDep,
    x_paystack_signature: str | None = Header(default=None),
) -> ApiEnvelope:
    """
    Paystack webhook

    请求路径: POST /api/v1/paystack/webhook

    - 签名错误：401
    - 签名正确但结构非法：400
    - 其他情况（忽略、重复投递、已出票含部分失败）：200
    """
    raw_body = await request.body()
    report = await service.handle(raw_body, x_paystack_signature)

    if report.state == FulfillmentState.rejected:
        raise invalid_signature()
    if report.state == FulfillmentState.malformed:
        raise malformed_event()

    return ApiEnvelope(
        data=WebhookAckData(
            state=report.state.value,
            reference=report.reference,
            tickets_sent=report.sent_count,
            tickets_failed=report.failed_count,
        )
    )
