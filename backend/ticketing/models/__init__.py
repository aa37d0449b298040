"""
数据库模型定义模块

本模块使用 SQLModel 定义所有数据库表结构。

模型按功能拆分：
- purchase.py: 购买记录与已签发电子票
"""
from sqlmodel import SQLModel

from .purchase import IssuedTicket, Purchase, utc_now

__all__ = [
    "SQLModel",
    "utc_now",
    "Purchase",
    "IssuedTicket",
]
