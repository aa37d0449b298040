"""CRUD 操作模块"""
from .purchase import PurchaseLedger, get_purchase_by_reference

__all__ = [
    "PurchaseLedger",
    "get_purchase_by_reference",
]
