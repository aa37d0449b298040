from __future__ import annotations

import asyncio
import re

from sqlmodel import Session, create_engine, func, select

from conftest import RecordingTransport, build_service
from ticketing.enums import FulfillmentState, LedgerOutcome, UnitStatus
from ticketing.models import IssuedTicket, Purchase, SQLModel


def _handle(service, body: bytes, signature: str | None):
    return asyncio.run(service.handle(body, signature))


def _purchase_count(db) -> int:
    return db.exec(select(func.count()).select_from(Purchase)).one()


def test_invalid_signature_is_rejected(service, transport, db, make_event, sign):
    body = make_event()
    report = _handle(service, body, sign(body, secret="wrong"))
    assert report.state == FulfillmentState.rejected
    assert _purchase_count(db) == 0
    assert transport.sent == []


def test_missing_signature_is_rejected(service, db, make_event):
    assert _handle(service, make_event(), None).state == FulfillmentState.rejected
    assert _purchase_count(db) == 0


def test_non_success_event_is_ignored(service, transport, db, make_event, sign):
    body = make_event(event="transfer.success")
    report = _handle(service, body, sign(body))
    assert report.state == FulfillmentState.ignored
    assert _purchase_count(db) == 0
    assert transport.sent == []


def test_malformed_payloads(service, db, sign):
    for body in (b"not json", b"[1, 2]", b'{"data": {}}'):
        assert _handle(service, body, sign(body)).state == FulfillmentState.malformed

    # success event without a reference
    body = b'{"event": "charge.success", "data": {"amount": 100, "customer": {"email": "a@x.com"}}}'
    assert _handle(service, body, sign(body)).state == FulfillmentState.malformed
    assert _purchase_count(db) == 0


def test_non_success_event_data_shape_is_not_checked(service, db, sign):
    for body in (
        b'{"event": "transfer.success", "data": null}',
        b'{"event": "transfer.success", "data": "x"}',
        b'{"event": "transfer.success"}',
    ):
        assert _handle(service, body, sign(body)).state == FulfillmentState.ignored

    body = b'{"event": "charge.success", "data": null}'
    assert _handle(service, body, sign(body)).state == FulfillmentState.malformed
    assert _purchase_count(db) == 0


def test_negative_quantity_is_malformed(service, transport, make_event, sign):
    body = make_event(cart=[{"type": "regular", "quantity": -1, "name": "Regular Ticket"}])
    assert _handle(service, body, sign(body)).state == FulfillmentState.malformed
    assert transport.sent == []


def test_success_event_records_purchase_and_sends_tickets(service, transport, db, make_event, sign):
    body = make_event()
    report = _handle(service, body, sign(body))

    assert report.state == FulfillmentState.acknowledged
    assert report.ledger == LedgerOutcome.recorded
    assert report.reference == "abc123"
    assert report.sent_count == 2
    assert report.failed_count == 0

    identifiers = [u.identifier for u in report.units]
    assert len(set(identifiers)) == 2
    assert all(re.fullmatch(r"ULES-REGULAR-[0-9A-F]{8}", i or "") for i in identifiers)

    assert [m["To"] for m in transport.sent] == ["a@x.com", "a@x.com"]
    assert [m["Subject"] for m in transport.sent] == ["Your ULES Dinner Ticket: Regular Ticket"] * 2

    purchase = db.exec(select(Purchase)).one()
    assert purchase.buyer_name == "Jane Doe"
    assert purchase.buyer_email == "a@x.com"
    assert purchase.total_amount == 1000000
    assert purchase.inventory == [{"ticketType": "regular", "quantity": 2, "name": "Regular Ticket"}]

    issued = db.exec(select(IssuedTicket).order_by(IssuedTicket.id)).all()
    assert [t.code for t in issued] == identifiers
    assert all(t.status == UnitStatus.sent for t in issued)


def test_redelivery_short_circuits(service, transport, db, make_event, sign):
    body = make_event()
    first = _handle(service, body, sign(body))
    second = _handle(service, body, sign(body))

    assert first.state == FulfillmentState.acknowledged
    assert second.state == FulfillmentState.already_processed
    assert second.ledger == LedgerOutcome.duplicate
    assert second.units == []
    assert _purchase_count(db) == 1
    assert len(transport.sent) == 2


def test_missing_asset_only_fails_that_unit(service, transport, db, make_event, sign):
    body = make_event(
        cart=[
            {"type": "gala", "quantity": 1, "name": "Gala Ticket"},
            {"type": "regular", "quantity": 1, "name": "Regular Ticket"},
            {"type": "vip", "quantity": 1, "name": "VIP Ticket"},
        ]
    )
    report = _handle(service, body, sign(body))

    assert report.state == FulfillmentState.acknowledged
    assert [u.status for u in report.units] == [
        UnitStatus.asset_failed,
        UnitStatus.sent,
        UnitStatus.sent,
    ]
    assert [m["Subject"] for m in transport.sent] == [
        "Your ULES Dinner Ticket: Regular Ticket",
        "Your ULES Dinner Ticket: VIP Ticket",
    ]
    statuses = db.exec(select(IssuedTicket.status).order_by(IssuedTicket.id)).all()
    assert statuses == [UnitStatus.asset_failed, UnitStatus.sent, UnitStatus.sent]


def test_dispatch_failure_is_isolated(engine, db, assets_dir, make_event, sign):
    transport = RecordingTransport(fail_for={"a@x.com"})
    service = build_service(engine, assets_dir, transport)
    body = make_event()
    report = _handle(service, body, sign(body))

    assert report.state == FulfillmentState.acknowledged
    assert report.failed_count == 2
    assert all(u.status == UnitStatus.dispatch_failed for u in report.units)
    assert all(u.identifier for u in report.units)


def test_unexpected_unit_error_does_not_abort_siblings(service, transport, make_event, sign, monkeypatch):
    generate = service._generator.generate
    calls = {"n": 0}

    def flaky(unit):
        calls["n"] += 1
        if calls["n"] == 1:
            raise RuntimeError("boom")
        return generate(unit)

    monkeypatch.setattr(service._generator, "generate", flaky)
    body = make_event()
    report = _handle(service, body, sign(body))
    assert [u.status for u in report.units] == [UnitStatus.error, UnitStatus.sent]
    assert len(transport.sent) == 1


def test_ledger_failure_still_fulfils(service, transport, make_event, sign, monkeypatch):
    monkeypatch.setattr(service._ledger, "record_purchase", lambda purchase: LedgerOutcome.failed)
    body = make_event()
    report = _handle(service, body, sign(body))
    assert report.state == FulfillmentState.acknowledged
    assert report.ledger == LedgerOutcome.failed
    assert len(transport.sent) == 2


def test_zero_quantity_cart_records_purchase_without_tickets(service, transport, db, make_event, sign):
    body = make_event(cart=[{"type": "regular", "quantity": 0, "name": "Regular Ticket"}])
    report = _handle(service, body, sign(body))
    assert report.state == FulfillmentState.acknowledged
    assert report.units == []
    assert _purchase_count(db) == 1
    assert transport.sent == []


def test_concurrent_duplicate_deliveries_fulfil_once(tmp_path, assets_dir, make_event, sign):
    engine = create_engine(f"sqlite:///{tmp_path / 'ledger.sqlite'}")
    SQLModel.metadata.create_all(engine)
    transport = RecordingTransport()
    service = build_service(engine, assets_dir, transport)
    body = make_event(reference="race-1")

    async def deliver_twice():
        return await asyncio.gather(
            service.handle(body, sign(body)),
            service.handle(body, sign(body)),
        )

    reports = asyncio.run(deliver_twice())
    states = sorted(r.state.value for r in reports)
    assert states == ["acknowledged", "already_processed"]
    assert len(transport.sent) == 2
    with Session(engine) as session:
        assert session.exec(select(func.count()).select_from(Purchase)).one() == 1
        issued = session.exec(
            select(IssuedTicket).where(IssuedTicket.paystack_reference == "race-1")
        ).all()
        assert len(issued) == 2
    engine.dispose()
