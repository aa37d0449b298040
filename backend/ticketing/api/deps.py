"""
FastAPI 依赖注入模块

提供可复用的依赖项，用于路由处理函数中。
所有业务组件都在这里根据 settings 组装，组件本身不读取全局配置；
测试中通过 app.dependency_overrides 替换。
"""
from collections.abc import Generator  # 生成器类型，用于资源管理
from functools import lru_cache
from typing import Annotated  # 类型注解，用于依赖注入

from fastapi import Depends
from sqlmodel import Session  # 数据库会话

from ticketing.core.config import settings
from ticketing.core.db import engine
from ticketing.core.security import SignatureVerifier
from ticketing.crud import PurchaseLedger
from ticketing.integrations.mailer import LoggingTransport, MailTransport, SmtpConfig, SmtpTransport
from ticketing.integrations.paystack import PaystackClient
from ticketing.services.artifacts import ArtifactGenerator
from ticketing.services.fulfillment import FulfillmentService
from ticketing.services.notifications import TicketMailer


def get_db() -> Generator[Session, None, None]:
    """
    获取数据库会话（依赖注入）

    使用 yield 确保会话在请求结束后自动关闭。
    """
    with Session(engine) as session:
        yield session


def build_mail_transport() -> MailTransport:
    """模拟模式或未配置 SMTP 时使用日志通道"""
    if settings.MAIL_MOCK or not settings.SMTP_HOST:
        return LoggingTransport()
    return SmtpTransport(
        SmtpConfig(
            hostname=settings.SMTP_HOST,
            port=settings.SMTP_PORT,
            username=settings.SMTP_USER,
            password=settings.SMTP_PASSWORD,
            use_tls=settings.SMTP_SSL,
            start_tls=settings.SMTP_TLS,
            timeout=settings.MAIL_SEND_TIMEOUT_SECONDS,
        )
    )


@lru_cache
def get_fulfillment_service() -> FulfillmentService:
    """组装出票编排服务（进程内单例）"""
    generator = ArtifactGenerator(
        assets_dir=settings.TICKET_ASSETS_DIR,
        program_tag=settings.TICKET_PROGRAM_TAG,
        random_bytes=settings.TICKET_ID_RANDOM_BYTES,
        code_size=settings.TICKET_CODE_SIZE,
        code_margin=settings.TICKET_CODE_MARGIN,
        code_position=(settings.TICKET_CODE_LEFT, settings.TICKET_CODE_TOP),
    )
    mailer = TicketMailer(
        transport=build_mail_transport(),
        from_email=settings.EMAILS_FROM_EMAIL,
        from_name=settings.EMAILS_FROM_NAME,
        subject_template=settings.TICKET_EMAIL_SUBJECT,
        attachment_prefix=f"{settings.TICKET_PROGRAM_TAG.lower()}-ticket",
        timeout=settings.MAIL_SEND_TIMEOUT_SECONDS,
    )
    return FulfillmentService(
        verifier=SignatureVerifier(settings.PAYSTACK_SECRET_KEY),
        ledger=PurchaseLedger(engine),
        generator=generator,
        mailer=mailer,
        success_event=settings.PAYSTACK_SUCCESS_EVENT,
    )


def get_paystack_client() -> PaystackClient:
    return PaystackClient(
        secret_key=settings.PAYSTACK_SECRET_KEY,
        base_url=settings.PAYSTACK_BASE_URL,
        callback_url=settings.PAYSTACK_CALLBACK_URL,
    )


# 类型别名，简化依赖注入的写法
SessionDep = Annotated[Session, Depends(get_db)]  # 数据库会话依赖
FulfillmentDep = Annotated[FulfillmentService, Depends(get_fulfillment_service)]
PaystackDep = Annotated[PaystackClient, Depends(get_paystack_client)]
