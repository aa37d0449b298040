"""
购买记录模型模块

定义购买记录和已签发电子票的数据库模型。
"""
from datetime import datetime, timezone
from typing import Any

from sqlalchemy import JSON, BigInteger, Column, DateTime, Integer, String, Text
from sqlmodel import Field, SQLModel

from ticketing.enums import UnitStatus


def utc_now() -> datetime:
    """获取当前 UTC 时间"""
    return datetime.now(timezone.utc)


class Purchase(SQLModel, table=True):
    """
    购买记录模型

    每笔 Paystack 支付对应一条记录，首次收到成功事件时写入，之后不再修改或删除。
    paystack_reference 唯一索引是防止 webhook 重投递导致重复出票的唯一依据。

    字段说明：
    - id: 主键
    - buyer_name: 购买人姓名（来自支付元数据 full_name）
    - buyer_email: 购买人邮箱（电子票发送地址）
    - inventory: 购买明细（JSON 列表，每项 {ticketType, quantity, name}）
    - total_amount: 支付金额（最小货币单位，例如 kobo）
    - paystack_reference: Paystack 交易流水号（唯一）
    - purchase_date: 记录创建时间
    """
    __tablename__ = "purchases"

    id: int | None = Field(
        default=None,
        sa_column=Column(Integer, primary_key=True, autoincrement=True),
    )
    buyer_name: str = Field(sa_column=Column(String(255), nullable=False))
    buyer_email: str = Field(sa_column=Column(String(255), nullable=False))
    inventory: list[dict[str, Any]] = Field(
        default_factory=list,
        sa_column=Column(JSON, nullable=False),
    )
    total_amount: int = Field(sa_column=Column(BigInteger, nullable=False))
    paystack_reference: str = Field(
        sa_column=Column(String(128), unique=True, index=True, nullable=False)
    )
    purchase_date: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )


class IssuedTicket(SQLModel, table=True):
    """
    已签发电子票模型

    每处理一张票写入一行（尽力而为），记录票号与处理结果，
    便于扫码时核对票号，以及运营人员对失败的票手动补发。
    code 为空表示该票在生成票号之前就失败了。
    """
    __tablename__ = "issued_tickets"

    id: int | None = Field(
        default=None,
        sa_column=Column(Integer, primary_key=True, autoincrement=True),
    )
    paystack_reference: str = Field(
        sa_column=Column(String(128), index=True, nullable=False)
    )
    code: str | None = Field(
        default=None,
        sa_column=Column(String(64), unique=True, index=True, nullable=True),
    )
    ticket_type: str = Field(sa_column=Column(String(64), nullable=False))
    display_name: str = Field(sa_column=Column(String(255), nullable=False))
    sequence_index: int = Field(sa_column=Column(Integer, nullable=False))
    status: UnitStatus = Field(sa_column=Column(String(32), nullable=False))
    error: str | None = Field(default=None, sa_column=Column(Text, nullable=True))
    created_at: datetime = Field(
        default_factory=utc_now,
        sa_column=Column(DateTime(timezone=True), nullable=False),
    )
