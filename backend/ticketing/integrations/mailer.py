"""
邮件发送通道

- SmtpTransport: 通过 aiosmtplib 异步发送
- LoggingTransport: 模拟模式，只记录日志（本地开发时不需要真实 SMTP）

发送失败直接抛出 aiosmtplib / 网络异常，由上层统一转换为发送结果。
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from email.message import EmailMessage
from typing import Protocol

import aiosmtplib

logger = logging.getLogger(__name__)


class MailTransport(Protocol):
    async def send(self, message: EmailMessage) -> None: ...


@dataclass(frozen=True)
class SmtpConfig:
    hostname: str
    port: int = 587
    username: str | None = None
    password: str | None = None
    use_tls: bool = False  # 直接 SSL 连接
    start_tls: bool = True
    timeout: float = 30.0


class SmtpTransport:
    """SMTP 发送通道，每封邮件单独建立连接"""

    def __init__(self, config: SmtpConfig) -> None:
        self._config = config

    async def send(self, message: EmailMessage) -> None:
        cfg = self._config
        await aiosmtplib.send(
            message,
            hostname=cfg.hostname,
            port=cfg.port,
            username=cfg.username,
            password=cfg.password,
            use_tls=cfg.use_tls,
            start_tls=cfg.start_tls if not cfg.use_tls else False,
            timeout=cfg.timeout,
        )


class LoggingTransport:
    """模拟发送：记录收件人、主题和附件名"""

    async def send(self, message: EmailMessage) -> None:
        attachments = [part.get_filename() for part in message.iter_attachments()]
        logger.info(
            f"[mock mail] to={message['To']} subject={message['Subject']!r} attachments={attachments}"
        )
