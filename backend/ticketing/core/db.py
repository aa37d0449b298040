"""
数据库连接模块

管理数据库引擎的创建。
使用 SQLModel 的 create_engine 创建数据库连接池。

重要提示：
- 数据库表结构通过 Alembic 迁移管理（ticketing/alembic），不要在这里创建表
- 账本（PurchaseLedger）持有引擎并为每次写入单独打开会话
"""
from sqlmodel import create_engine  # SQLModel 的数据库工具

from ticketing.core.config import settings

# pool_pre_ping: 取连接前先探活
engine = create_engine(str(settings.SQLALCHEMY_DATABASE_URI), pool_pre_ping=True)
