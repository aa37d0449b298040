"""
API 路由聚合模块

将所有业务路由模块聚合到一个统一的 router 中。
这个 router 会被注册到主应用（ticketing/main.py）上。

路由模块说明：
- paystack: 支付初始化、Paystack webhook 出票
- utils: 工具相关（健康检查等）
"""
from fastapi import APIRouter

from ticketing.api.routes import (
    paystack,  # 支付路由
    utils,  # 工具路由
)

api_router = APIRouter()

api_router.include_router(paystack.router)  # /paystack/*
api_router.include_router(utils.router)  # /utils/*
