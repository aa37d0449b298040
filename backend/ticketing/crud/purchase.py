"""购买记录账本（Purchase Ledger）"""
import logging

from sqlalchemy import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ticketing.enums import LedgerOutcome, UnitStatus
from ticketing.models import IssuedTicket, Purchase

logger = logging.getLogger(__name__)


def get_purchase_by_reference(*, session: Session, reference: str) -> Purchase | None:
    """按 Paystack 流水号查询购买记录"""
    return session.exec(
        select(Purchase).where(Purchase.paystack_reference == reference)
    ).first()


class PurchaseLedger:
    """
    购买记录账本

    以 paystack_reference 唯一约束保证同一笔支付最多只有一条记录。
    并发投递同一事件时由数据库唯一约束裁决：只有一个写入成功，其余得到 duplicate。
    每次操作独立开会话，方法均为同步阻塞调用，由调用方放入线程池执行。
    """

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def record_purchase(self, purchase: Purchase) -> LedgerOutcome:
        reference = purchase.paystack_reference
        try:
            with Session(self._engine) as session:
                session.add(purchase)
                session.commit()
        except IntegrityError as exc:
            # 流水号唯一约束冲突即重复投递，其他完整性错误视为写入失败
            if self._reference_exists(reference):
                logger.info(f"Webhook for purchase {reference} already processed. Ignoring.")
                return LedgerOutcome.duplicate
            logger.error(f"Database save error for purchase {reference}: {exc}")
            return LedgerOutcome.failed
        except SQLAlchemyError as exc:
            logger.error(f"Database save error for purchase {reference}: {exc}")
            return LedgerOutcome.failed

        logger.info(f"Purchase {reference} saved to database.")
        return LedgerOutcome.recorded

    def _reference_exists(self, reference: str) -> bool:
        try:
            with Session(self._engine) as session:
                return get_purchase_by_reference(session=session, reference=reference) is not None
        except SQLAlchemyError as exc:
            logger.error(f"Failed to look up purchase {reference}: {exc}")
            return False

    def record_issued_ticket(
        self,
        *,
        reference: str,
        code: str | None,
        ticket_type: str,
        display_name: str,
        sequence_index: int,
        status: UnitStatus,
        error: str | None = None,
    ) -> bool:
        """记录单张票的处理结果，失败只记日志，返回是否写入成功"""
        ticket = IssuedTicket(
            paystack_reference=reference,
            code=code,
            ticket_type=ticket_type,
            display_name=display_name,
            sequence_index=sequence_index,
            status=status,
            error=error,
        )
        try:
            with Session(self._engine) as session:
                session.add(ticket)
                session.commit()
        except SQLAlchemyError as exc:
            logger.error(f"Failed to record issued ticket {code} for purchase {reference}: {exc}")
            return False
        return True
