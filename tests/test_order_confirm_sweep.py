from dataclasses import replace
from datetime import timedelta

import pytest

from order_confirm.core.config import MessagingSettings
from order_confirm.models.order import STATUS_CONFIRMED, Order
from order_confirm.models.whatsapp_log import DIRECTION_OUTBOUND, WhatsAppLog
from order_confirm.services.order_confirm_sweep import (
    REVIEW_REASON_INVALID_PHONE,
    SWEEP_COMPLETED,
    SWEEP_CONFIG_ERROR,
    SWEEP_DISABLED,
    resolve_first_name,
    run_order_confirm_sweep,
)
from tests.fixtures_data import LIVE_SETTINGS, NOW, RecordingProvider, build_session, make_order


def _outbound_logs(db):
    return db.query(WhatsAppLog).filter(WhatsAppLog.direction == DIRECTION_OUTBOUND).order_by(WhatsAppLog.id).all()


def test_disabled_sweep_does_nothing():
    db = build_session()
    make_order(db)
    provider = RecordingProvider()

    summary = run_order_confirm_sweep(db, replace(LIVE_SETTINGS, auto_confirm_enabled=False), provider=provider, now=NOW)

    assert summary.status == SWEEP_DISABLED
    assert summary.message == "Auto-confirm disabled"
    assert summary.processed == 0
    assert provider.sent == []
    assert db.query(WhatsAppLog).count() == 0


def test_missing_credentials_short_circuits():
    db = build_session()
    make_order(db)

    summary = run_order_confirm_sweep(db, MessagingSettings(auto_confirm_enabled=True), now=NOW)

    assert summary.status == SWEEP_CONFIG_ERROR
    assert summary.processed == 0
    assert db.query(WhatsAppLog).count() == 0
    assert db.query(Order).one().whatsapp_confirm_sent is False


def test_sends_due_orders_and_marks_them():
    db = build_session()
    order = make_order(db, first_name=None, client_nom="Amina Benali")
    provider = RecordingProvider()

    summary = run_order_confirm_sweep(db, LIVE_SETTINGS, provider=provider, now=NOW)

    assert summary.status == SWEEP_COMPLETED
    assert (summary.processed, summary.sent, summary.failed, summary.skipped) == (1, 1, 0, 0)

    db.refresh(order)
    assert order.whatsapp_confirm_sent is True
    assert order.whatsapp_confirm_at is not None
    assert order.first_name == "Amina"
    assert order.phone_e164 == "+212612345678"

    assert len(provider.sent) == 1
    params = provider.sent[0]["template"]["components"][0]["parameters"]
    assert [p["text"] for p in params] == ["Amina", "CMD-1001", "249"]

    logs = _outbound_logs(db)
    assert len(logs) == 1
    assert logs[0].order_id == order.id
    assert logs[0].response_status == 200
    assert logs[0].wa_message_id == "wamid.OUT1"
    assert logs[0].template_name == "order_confirm"


def test_recent_and_non_new_orders_are_not_selected():
    db = build_session()
    make_order(db, code_suivi="RECENT", created_at=NOW - timedelta(minutes=30))
    make_order(db, code_suivi="DONE", status=STATUS_CONFIRMED)
    make_order(db, code_suivi="ALREADY", whatsapp_confirm_sent=True)
    provider = RecordingProvider()

    summary = run_order_confirm_sweep(db, LIVE_SETTINGS, provider=provider, now=NOW)

    assert summary.processed == 0
    assert provider.sent == []


def test_sent_orders_are_not_selected_again():
    db = build_session()
    make_order(db)
    provider = RecordingProvider()

    run_order_confirm_sweep(db, LIVE_SETTINGS, provider=provider, now=NOW)
    second = run_order_confirm_sweep(db, LIVE_SETTINGS, provider=provider, now=NOW + timedelta(minutes=5))

    assert second.processed == 0
    assert len(provider.sent) == 1


def test_invalid_phone_is_skipped_and_flagged_for_review():
    db = build_session()
    order = make_order(db, phone_e164=None, client_phone="12345")
    provider = RecordingProvider()

    summary = run_order_confirm_sweep(db, LIVE_SETTINGS, provider=provider, now=NOW)

    assert (summary.processed, summary.skipped, summary.sent) == (1, 1, 0)
    assert provider.sent == []
    db.refresh(order)
    assert order.whatsapp_confirm_sent is False
    assert order.whatsapp_needs_review is True
    assert order.whatsapp_review_reason == REVIEW_REASON_INVALID_PHONE

    logs = _outbound_logs(db)
    assert len(logs) == 1
    assert logs[0].response_status == 0
    assert logs[0].error_text == "Invalid phone number format"

    again = run_order_confirm_sweep(db, LIVE_SETTINGS, provider=provider, now=NOW)
    assert again.processed == 0


def test_raw_client_phone_is_used_when_canonical_is_missing():
    db = build_session()
    order = make_order(db, phone_e164=None, client_phone="06 61 22 33 44")
    provider = RecordingProvider()

    run_order_confirm_sweep(db, LIVE_SETTINGS, provider=provider, now=NOW)

    assert provider.sent[0]["to"] == "212661223344"
    db.refresh(order)
    assert order.phone_e164 == "+212661223344"


def test_provider_failure_leaves_order_for_next_run():
    db = build_session()
    order = make_order(db)
    failing = RecordingProvider(ok=False)

    summary = run_order_confirm_sweep(db, LIVE_SETTINGS, provider=failing, now=NOW)

    assert (summary.processed, summary.failed) == (1, 1)
    db.refresh(order)
    assert order.whatsapp_confirm_sent is False
    log = _outbound_logs(db)[0]
    assert log.response_status == 400
    assert log.error_text.startswith("WhatsApp API error 400")

    retry = run_order_confirm_sweep(db, LIVE_SETTINGS, provider=RecordingProvider(), now=NOW)
    assert retry.sent == 1


def test_one_failing_order_does_not_stop_the_batch():
    db = build_session()
    make_order(db, code_suivi="A", phone_e164="+212600000001", created_at=NOW - timedelta(hours=5))
    make_order(db, code_suivi="B", phone_e164="+212600000002", created_at=NOW - timedelta(hours=4))
    make_order(db, code_suivi="C", phone_e164="+212600000003", created_at=NOW - timedelta(hours=3))
    provider = RecordingProvider(fail_for={"212600000002"})

    summary = run_order_confirm_sweep(db, LIVE_SETTINGS, provider=provider, now=NOW)

    assert (summary.processed, summary.sent, summary.failed) == (3, 2, 1)
    assert [payload["to"] for payload in provider.sent] == ["212600000001", "212600000002", "212600000003"]
    assert len(_outbound_logs(db)) == 3


def test_unexpected_exception_is_isolated_per_order():
    db = build_session()
    make_order(db, code_suivi="A", phone_e164="+212600000001", created_at=NOW - timedelta(hours=5))
    make_order(db, code_suivi="B", phone_e164="+212600000002", created_at=NOW - timedelta(hours=4))

    class ExplodingProvider(RecordingProvider):
        def send(self, payload):
            if payload["to"] == "212600000001":
                raise RuntimeError("boom")
            return super().send(payload)

    summary = run_order_confirm_sweep(db, LIVE_SETTINGS, provider=ExplodingProvider(), now=NOW)

    assert (summary.processed, summary.sent, summary.failed) == (2, 1, 1)


def test_order_vanishing_after_a_rollback_does_not_abort_the_batch():
    db = build_session()
    make_order(db, code_suivi="A", phone_e164="+212600000001", created_at=NOW - timedelta(hours=5))
    make_order(db, code_suivi="B", phone_e164="+212600000002", created_at=NOW - timedelta(hours=4))
    make_order(db, code_suivi="C", phone_e164="+212600000003", created_at=NOW - timedelta(hours=3))

    class DeletingProvider(RecordingProvider):
        def send(self, payload):
            if payload["to"] == "212600000001":
                db.query(Order).filter(Order.code_suivi == "B").delete(synchronize_session=False)
                db.commit()
                raise RuntimeError("provider crashed")
            return super().send(payload)

    provider = DeletingProvider()
    summary = run_order_confirm_sweep(db, LIVE_SETTINGS, provider=provider, now=NOW)

    assert (summary.processed, summary.sent, summary.failed) == (3, 1, 2)
    assert [payload["to"] for payload in provider.sent] == ["212600000003"]
    sent = db.query(Order).filter(Order.code_suivi == "C").one()
    assert sent.whatsapp_confirm_sent is True


def test_dry_run_logs_every_order_without_persisting_contact():
    db = build_session()
    for index in range(3):
        make_order(db, code_suivi=f"DRY-{index}", first_name=None, phone_e164=None, client_phone=f"061234567{index}")

    settings = MessagingSettings(auto_confirm_enabled=True, dry_run=True)
    summary = run_order_confirm_sweep(db, settings, now=NOW)

    assert summary.dry_run is True
    assert (summary.processed, summary.sent) == (3, 3)
    logs = _outbound_logs(db)
    assert len(logs) == 3
    assert all(log.wa_message_id.startswith("dry_run_") for log in logs)

    orders = db.query(Order).all()
    assert all(order.whatsapp_confirm_sent for order in orders)
    assert all(order.phone_e164 is None for order in orders)
    assert all(order.first_name is None for order in orders)


def test_batch_limit_and_pause_between_live_sends():
    db = build_session()
    for index in range(4):
        make_order(db, code_suivi=f"L-{index}", phone_e164=f"+21260000000{index}")
    pauses = []

    settings = replace(LIVE_SETTINGS, batch_limit=3, send_pause_seconds=0.1)
    summary = run_order_confirm_sweep(db, settings, provider=RecordingProvider(), now=NOW, sleep=pauses.append)

    assert summary.processed == 3
    assert pauses == [0.1, 0.1]


@pytest.mark.parametrize(
    "first_name,client_nom,expected",
    [("Youssef", "Autre Nom", "Youssef"), (None, "Sara El Idrissi", "Sara"), ("", None, "Client")],
)
def test_resolve_first_name(first_name, client_nom, expected):
    assert resolve_first_name(Order(first_name=first_name, client_nom=client_nom)) == expected
