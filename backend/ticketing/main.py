"""
FastAPI 应用主入口

这是应用的启动文件，负责：
1. 配置日志和 Sentry
2. 创建 FastAPI 应用实例，启动时检查关键配置
3. 注册全局异常处理器
4. 注册 API 路由

运行方式：
    uvicorn ticketing.main:app --reload  # 开发模式
    fastapi dev ticketing/main.py  # 或使用 FastAPI CLI
"""
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

import sentry_sdk  # Sentry 错误监控
from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError  # 请求验证错误
from fastapi.middleware.cors import CORSMiddleware  # CORS 中间件
from fastapi.responses import JSONResponse  # JSON 响应
from fastapi.routing import APIRoute  # 路由类型

from ticketing.api.errors import AppError
from ticketing.api.main import api_router
from ticketing.core.config import Settings, settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


def custom_generate_unique_id(route: APIRoute) -> str:
    """OpenAPI 操作 ID：{tag}-{route_name}，例如 "paystack-paystack_webhook" """
    return f"{route.tags[0]}-{route.name}"


def config_warnings(cfg: Settings) -> list[str]:
    """
    检查出票流程依赖的关键配置

    缺少这些配置时服务仍可启动，但 webhook 会全部被拒绝、邮件不会真正发出或底图缺失。
    """
    warnings: list[str] = []
    if not cfg.PAYSTACK_SECRET_KEY:
        warnings.append("PAYSTACK_SECRET_KEY is not set.")
    if not cfg.MAIL_MOCK and not cfg.SMTP_HOST:
        warnings.append("SMTP_HOST is not set, tickets will only be logged.")
    if not cfg.TICKET_ASSETS_DIR.is_dir():
        warnings.append(f"TICKET_ASSETS_DIR {cfg.TICKET_ASSETS_DIR} does not exist.")
    return warnings


@asynccontextmanager
async def lifespan(_: FastAPI) -> AsyncIterator[None]:
    for message in config_warnings(settings):
        logger.warning(f"WARNING: {message}")
    logger.info(f"{settings.PROJECT_NAME} is running ({settings.ENVIRONMENT})")
    yield


# 初始化 Sentry 错误监控（仅在非本地环境）
if settings.SENTRY_DSN and settings.ENVIRONMENT != "local":  # pragma: no cover
    sentry_sdk.init(dsn=str(settings.SENTRY_DSN), enable_tracing=True)

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    generate_unique_id_function=custom_generate_unique_id,
    lifespan=lifespan,
)


@app.exception_handler(AppError)
async def app_error_handler(_: Request, exc: AppError) -> JSONResponse:
    """AppError → 统一错误响应 {"code", "message", "data": null}"""
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": exc.code, "message": exc.message, "data": None},
    )


@app.exception_handler(HTTPException)
async def http_error_handler(_: Request, exc: HTTPException) -> JSONResponse:
    """
    HTTP 异常处理器

    支持两种格式的 detail：
    1. 字典格式：{"code": 123, "message": "错误消息"}
    2. 字符串格式：自动生成错误码（状态码 * 1000）
    """
    payload: dict[str, Any]
    if isinstance(exc.detail, dict) and {"code", "message"} <= set(exc.detail.keys()):
        payload = {"code": exc.detail.get("code"), "message": exc.detail.get("message")}
    else:
        payload = {"code": exc.status_code * 1000, "message": str(exc.detail)}
    return JSONResponse(
        status_code=exc.status_code,
        content={"code": payload["code"], "message": payload["message"], "data": None},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(_: Request, exc: RequestValidationError) -> JSONResponse:
    """请求验证错误：422，附带详细错误列表"""
    return JSONResponse(
        status_code=422,
        content={
            "code": 422000,
            "message": "Validation error",
            "data": {"errors": exc.errors()},
        },
    )

# 配置 CORS（支付页面前端跨域调用 /paystack/initialize）
if settings.all_cors_origins:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.all_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

# 所有路由都会添加 /api/v1 前缀
app.include_router(api_router, prefix=settings.API_V1_STR)
