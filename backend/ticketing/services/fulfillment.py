"""
出票编排服务（Fulfillment Orchestrator）

处理一次 Paystack webhook 投递的完整流程：

    签名校验 → 解析事件 → 写入购买记录 → 展开购物车 → 逐张生成电子票并发邮件

状态流转：
- 签名失败 → rejected（401，不解析、不落库）
- 事件结构非法 → malformed（400）
- 非支付成功事件 → ignored（200，不处理）
- 流水号已存在 → already_processed（200，不再出票，幂等保证）
- 写入成功或写入失败（非重复）→ 逐张出票 → acknowledged（200）

一旦进入出票阶段，无论单张票成败都确认收到，避免 Paystack 反复重试；
单张票的失败被收集为 UnitOutcome，最后统一记录日志，不会影响其他票。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field

from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from ticketing.api.schemas import ChargeData, PaymentEvent, WebhookEnvelope
from ticketing.core.security import SignatureVerifier
from ticketing.crud import PurchaseLedger
from ticketing.enums import FulfillmentState, LedgerOutcome, UnitStatus
from ticketing.models import Purchase
from ticketing.services.artifacts import ArtifactGenerator, AssetError, RenderError
from ticketing.services.notifications import TicketMailer
from ticketing.services.units import Unit, expand

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class UnitOutcome:
    """单张票的处理结果"""
    unit: Unit
    status: UnitStatus
    identifier: str | None = None
    error: str | None = None

    @property
    def ok(self) -> bool:
        return self.status == UnitStatus.sent


@dataclass
class FulfillmentReport:
    """一次 webhook 处理的汇总结果"""
    state: FulfillmentState
    reference: str | None = None
    ledger: LedgerOutcome | None = None
    units: list[UnitOutcome] = field(default_factory=list)
    error: str | None = None

    @property
    def sent_count(self) -> int:
        return sum(1 for u in self.units if u.ok)

    @property
    def failed_count(self) -> int:
        return sum(1 for u in self.units if not u.ok)


class FulfillmentService:
    """出票编排服务，各组件在构造时注入"""

    def __init__(
        self,
        *,
        verifier: SignatureVerifier,
        ledger: PurchaseLedger,
        generator: ArtifactGenerator,
        mailer: TicketMailer,
        success_event: str = "charge.success",
    ) -> None:
        self._verifier = verifier
        self._ledger = ledger
        self._generator = generator
        self._mailer = mailer
        self._success_event = success_event

    async def handle(self, raw_body: bytes, signature: str | None) -> FulfillmentReport:
        """
        处理一次 webhook 投递

        Args:
            raw_body: 原始请求体（必须是未解析的字节）
            signature: x-paystack-signature 请求头

        Returns:
            FulfillmentReport，路由根据 state 决定响应状态码
        """
        if not self._verifier.verify(raw_body, signature):
            logger.warning("Webhook Error: Invalid signature")
            return FulfillmentReport(state=FulfillmentState.rejected)

        try:
            envelope = WebhookEnvelope.model_validate_json(raw_body)
        except ValidationError as e:
            logger.warning(f"Malformed webhook payload: {e}")
            return FulfillmentReport(state=FulfillmentState.malformed, error=str(e))

        if envelope.event != self._success_event:
            logger.info(f"Ignoring webhook event {envelope.event}")
            return FulfillmentReport(state=FulfillmentState.ignored)

        try:
            charge = ChargeData.model_validate(envelope.data)
        except ValidationError as e:
            logger.warning(f"Malformed {envelope.event} event: {e}")
            return FulfillmentReport(state=FulfillmentState.malformed, error=str(e))

        return await self.fulfil(PaymentEvent.from_charge(envelope.event, charge))

    async def fulfil(self, event: PaymentEvent) -> FulfillmentReport:
        """写入购买记录后逐张出票；重复流水号直接返回"""
        purchase = Purchase(
            buyer_name=event.purchaser_name,
            buyer_email=event.customer_email,
            inventory=[line.to_inventory() for line in event.cart],
            total_amount=event.amount_minor_units,
            paystack_reference=event.reference,
        )
        ledger = await run_in_threadpool(self._ledger.record_purchase, purchase)
        if ledger == LedgerOutcome.duplicate:
            return FulfillmentReport(
                state=FulfillmentState.already_processed,
                reference=event.reference,
                ledger=ledger,
            )

        logger.info(f"Payment successful for {event.customer_email}. Generating individual tickets...")
        # 逐张串行处理
        outcomes = [await self._fulfil_unit(event, unit) for unit in expand(event.cart)]

        report = FulfillmentReport(
            state=FulfillmentState.acknowledged,
            reference=event.reference,
            ledger=ledger,
            units=outcomes,
        )
        self._log_report(report, event)
        return report

    async def _fulfil_unit(self, event: PaymentEvent, unit: Unit) -> UnitOutcome:
        try:
            outcome = await self._issue(event, unit)
        except Exception as e:
            logger.exception(f"Error generating ticket {unit.label}")
            outcome = UnitOutcome(unit=unit, status=UnitStatus.error, error=str(e))

        await run_in_threadpool(
            lambda: self._ledger.record_issued_ticket(
                reference=event.reference,
                code=outcome.identifier,
                ticket_type=unit.ticket_type,
                display_name=unit.display_name,
                sequence_index=unit.sequence_index,
                status=outcome.status,
                error=outcome.error,
            )
        )
        return outcome

    async def _issue(self, event: PaymentEvent, unit: Unit) -> UnitOutcome:
        try:
            artifact = await run_in_threadpool(self._generator.generate, unit)
        except AssetError as e:
            return UnitOutcome(unit=unit, status=UnitStatus.asset_failed, identifier=e.identifier, error=str(e))
        except RenderError as e:
            return UnitOutcome(unit=unit, status=UnitStatus.render_failed, identifier=e.identifier, error=str(e))

        result = await self._mailer.send(
            to_address=event.customer_email,
            purchaser_name=event.purchaser_name,
            unit=unit,
            identifier=artifact.identifier,
            image=artifact.image,
        )
        if not result.ok:
            return UnitOutcome(
                unit=unit,
                status=UnitStatus.dispatch_failed,
                identifier=artifact.identifier,
                error=result.error,
            )
        return UnitOutcome(unit=unit, status=UnitStatus.sent, identifier=artifact.identifier)

    def _log_report(self, report: FulfillmentReport, event: PaymentEvent) -> None:
        for outcome in report.units:
            if outcome.ok:
                continue
            logger.error(
                f"Ticket {outcome.unit.label} for {event.customer_email} "
                f"(purchase {event.reference}) failed: {outcome.status.value} {outcome.error}"
            )
        ledger = report.ledger.value if report.ledger else None
        logger.info(
            f"Purchase {event.reference} fulfilled: ledger={ledger} "
            f"sent={report.sent_count} failed={report.failed_count}"
        )
