from __future__ import annotations

import hashlib
import hmac
import json
from collections.abc import Callable, Generator
from email.message import EmailMessage
from pathlib import Path
from typing import Any

import aiosmtplib
import pytest
from fastapi.testclient import TestClient
from PIL import Image
from sqlalchemy import Engine
from sqlalchemy.pool import StaticPool
from sqlmodel import Session, SQLModel, create_engine, delete

from ticketing.api.deps import get_db, get_fulfillment_service
from ticketing.core.security import SignatureVerifier
from ticketing.crud import PurchaseLedger
from ticketing.main import app
from ticketing.models import IssuedTicket, Purchase
from ticketing.services.artifacts import ArtifactGenerator
from ticketing.services.fulfillment import FulfillmentService
from ticketing.services.notifications import TicketMailer

SECRET = "sk_test_secret"


class RecordingTransport:
    """Collects messages instead of sending; rejects recipients listed in fail_for."""

    def __init__(self, fail_for: set[str] | None = None) -> None:
        self.sent: list[EmailMessage] = []
        self.fail_for = fail_for or set()

    async def send(self, message: EmailMessage) -> None:
        if message["To"] in self.fail_for:
            raise aiosmtplib.SMTPException("recipient rejected")
        self.sent.append(message)


def write_base_image(path: Path, size: tuple[int, int] = (1000, 400)) -> Path:
    Image.new("RGB", size, color=(30, 60, 90)).save(path, format="PNG")
    return path


def build_service(engine: Engine, assets_dir: Path, transport: RecordingTransport) -> FulfillmentService:
    return FulfillmentService(
        verifier=SignatureVerifier(SECRET),
        ledger=PurchaseLedger(engine),
        generator=ArtifactGenerator(assets_dir=assets_dir),
        mailer=TicketMailer(transport=transport, from_email="tickets@ules.test", timeout=5.0),
    )


@pytest.fixture(scope="session")
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    return engine


@pytest.fixture(scope="function")
def db(engine) -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session
        session.exec(delete(IssuedTicket))
        session.exec(delete(Purchase))
        session.commit()


@pytest.fixture()
def assets_dir(tmp_path: Path) -> Path:
    d = tmp_path / "assets"
    d.mkdir()
    write_base_image(d / "regular-ticket.png")
    write_base_image(d / "vip-ticket.png")
    return d


@pytest.fixture()
def transport() -> RecordingTransport:
    return RecordingTransport()


@pytest.fixture()
def service(engine, db, assets_dir, transport) -> FulfillmentService:
    return build_service(engine, assets_dir, transport)


@pytest.fixture()
def sign() -> Callable[..., str]:
    def _sign(body: bytes, secret: str = SECRET) -> str:
        return hmac.new(secret.encode(), body, hashlib.sha512).hexdigest()

    return _sign


@pytest.fixture()
def make_event() -> Callable[..., bytes]:
    def _make_event(
        *,
        event: str = "charge.success",
        reference: str = "abc123",
        email: str = "a@x.com",
        full_name: str = "Jane Doe",
        amount: int = 1000000,
        cart: list[dict[str, Any]] | None = None,
    ) -> bytes:
        if cart is None:
            cart = [{"type": "regular", "quantity": 2, "name": "Regular Ticket"}]
        payload = {
            "event": event,
            "data": {
                "reference": reference,
                "amount": amount,
                "customer": {"email": email},
                "metadata": {"full_name": full_name, "cart": cart},
            },
        }
        return json.dumps(payload).encode()

    return _make_event


@pytest.fixture(scope="function")
def client(engine, service) -> Generator[TestClient, None, None]:
    def _override_get_db() -> Generator[Session, None, None]:
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db] = _override_get_db
    app.dependency_overrides[get_fulfillment_service] = lambda: service
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
