"""
购物车展开

把购物车（票种 + 数量）展开成逐张的票（Unit），每张票单独生成、单独发送。
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from ticketing.api.schemas import CartLine


@dataclass(frozen=True)
class Unit:
    """单张票，只在处理过程中存在，不入库"""
    ticket_type: str
    display_name: str
    sequence_index: int  # 在所属购物车行内的序号，从 0 开始

    @property
    def label(self) -> str:
        """日志里使用的标识，例如 "Regular Ticket #2" """
        return f"{self.display_name} #{self.sequence_index + 1}"


def expand(cart: Iterable[CartLine]) -> list[Unit]:
    """
    展开购物车

    按行顺序、再按行内序号顺序生成票；数量为 0 的行不产生票。

    Args:
        cart: 购物车行（CartLine）

    Returns:
        票列表，长度等于各行数量之和

    Raises:
        ValueError: 数量不是非负整数（不做截断或修正）
    """
    units: list[Unit] = []
    for line in cart:
        quantity = line.quantity
        # bool 是 int 的子类，这里单独排除
        if isinstance(quantity, bool) or not isinstance(quantity, int):
            raise ValueError(f"quantity must be an integer, got {quantity!r}")
        if quantity < 0:
            raise ValueError(f"quantity must be non-negative, got {quantity}")
        units.extend(
            Unit(ticket_type=line.ticket_type, display_name=line.display_name, sequence_index=i)
            for i in range(quantity)
        )
    return units
