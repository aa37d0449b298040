"""
电子票邮件服务

每张票一封邮件：固定主题模板、HTML 正文（购买人姓名 + 票号）、一个 PNG 附件。
发送失败不抛异常，返回 DispatchResult 并记录日志（含票名、序号、收件人）。
"""
from __future__ import annotations

import asyncio
import html
import logging
from dataclasses import dataclass
from email.message import EmailMessage
from email.utils import formataddr

import aiosmtplib

from ticketing.integrations.mailer import MailTransport
from ticketing.services.units import Unit

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DispatchResult:
    ok: bool
    error: str | None = None


class TicketMailer:
    """电子票邮件发送器"""

    def __init__(
        self,
        *,
        transport: MailTransport,
        from_email: str,
        from_name: str | None = None,
        subject_template: str = "Your ULES Dinner Ticket: {display_name}",
        attachment_prefix: str = "ules-ticket",
        timeout: float = 30.0,
    ) -> None:
        self._transport = transport
        self._from_email = from_email
        self._from_name = from_name
        self._subject_template = subject_template
        self._attachment_prefix = attachment_prefix
        self._timeout = timeout

    def build_message(
        self,
        *,
        to_address: str,
        purchaser_name: str,
        unit: Unit,
        identifier: str,
        image: bytes,
    ) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = formataddr((self._from_name, self._from_email)) if self._from_name else self._from_email
        msg["To"] = to_address
        msg["Subject"] = self._subject_template.format(display_name=unit.display_name)

        msg.set_content(
            f"Thank You, {purchaser_name}!\n\n"
            f"Please find your attached ticket. ID: {identifier}\n"
        )
        msg.add_alternative(
            f"<h1>Thank You, {html.escape(purchaser_name)}!</h1>"
            f"<p>Please find your attached ticket. ID: {html.escape(identifier)}</p>",
            subtype="html",
        )
        msg.add_attachment(
            image,
            maintype="image",
            subtype="png",
            filename=f"{self._attachment_prefix}-{identifier}.png",
        )
        return msg

    async def send(
        self,
        *,
        to_address: str,
        purchaser_name: str,
        unit: Unit,
        identifier: str,
        image: bytes,
    ) -> DispatchResult:
        msg = self.build_message(
            to_address=to_address,
            purchaser_name=purchaser_name,
            unit=unit,
            identifier=identifier,
            image=image,
        )
        try:
            await asyncio.wait_for(self._transport.send(msg), timeout=self._timeout)
        except asyncio.TimeoutError:
            error = f"mail transport timed out after {self._timeout}s"
        except (aiosmtplib.SMTPException, OSError) as e:
            error = str(e) or e.__class__.__name__
        else:
            logger.info(f"Successfully sent ticket {unit.label} to {to_address}")
            return DispatchResult(ok=True)

        logger.error(f"Failed to send ticket {unit.label} to {to_address}: {error}")
        return DispatchResult(ok=False, error=error)
