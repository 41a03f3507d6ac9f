from fastapi import FastAPI
from fastapi.testclient import TestClient

from order_confirm.core import config
from order_confirm.core.config import MessagingSettings, get_messaging_settings
from order_confirm.core.database import get_db
from order_confirm.models.whatsapp_log import WhatsAppLog
from order_confirm.routers.notifications import router as notifications_router
from order_confirm.services.tracking_notification import send_tracking_notification
from order_confirm.whatsapp.service import get_whatsapp_provider
from tests.fixtures_data import LIVE_SETTINGS, RecordingProvider, build_session, make_order


def _build_client(monkeypatch, db, settings=LIVE_SETTINGS, provider=None) -> TestClient:
    monkeypatch.setattr(config, "INTERNAL_API_TOKEN", "")
    monkeypatch.setattr(config, "IS_PROD", False)
    app = FastAPI()
    app.include_router(notifications_router)
    app.dependency_overrides[get_db] = lambda: db
    app.dependency_overrides[get_messaging_settings] = lambda: settings
    app.dependency_overrides[get_whatsapp_provider] = lambda: provider
    return TestClient(app)


def test_tracking_notification_sends_two_parameter_template():
    db = build_session()
    order = make_order(db, phone_e164=None, client_phone="0661223344", first_name=None, client_nom="Karim Alaoui")
    provider = RecordingProvider()

    result = send_tracking_notification(db, LIVE_SETTINGS, order_id=order.id, provider=provider)

    assert result.success is True
    payload = provider.sent[0]
    assert payload["template"]["name"] == "tracking_notification"
    assert [p["text"] for p in payload["template"]["components"][0]["parameters"]] == ["Karim", "CMD-1001"]

    db.refresh(order)
    assert order.phone_e164 == "+212661223344"
    assert order.first_name == "Karim"
    assert order.whatsapp_confirm_sent is False


def test_tracking_notification_invalid_phone_logs_skip():
    db = build_session()
    order = make_order(db, phone_e164=None, client_phone="000")
    provider = RecordingProvider()

    result = send_tracking_notification(db, LIVE_SETTINGS, order_id=order.id, provider=provider)

    assert result.success is False
    assert result.error == "Invalid phone number"
    assert provider.sent == []
    log = db.query(WhatsAppLog).one()
    assert log.response_status == 0
    assert log.template_name == "tracking_notification"


def test_tracking_notification_route(monkeypatch):
    db = build_session()
    order = make_order(db)
    client = _build_client(monkeypatch, db, provider=RecordingProvider())

    ok = client.post(f"/api/whatsapp/orders/{order.id}/tracking-notification")
    missing = client.post("/api/whatsapp/orders/424242/tracking-notification")

    assert ok.status_code == 200
    assert ok.json() == {"success": True, "message_id": "wamid.OUT1"}
    assert missing.status_code == 404


def test_tracking_notification_route_without_credentials(monkeypatch):
    db = build_session()
    order = make_order(db)
    client = _build_client(monkeypatch, db, settings=MessagingSettings())

    response = client.post(f"/api/whatsapp/orders/{order.id}/tracking-notification")

    assert response.status_code == 200
    assert response.json() == {
        "success": False,
        "error": "WhatsApp credentials not configured",
        "error_kind": "config",
    }
    log = db.query(WhatsAppLog).one()
    assert log.error_text == "Missing WhatsApp credentials"


def test_tracking_notification_route_provider_failure(monkeypatch):
    db = build_session()
    order = make_order(db)
    client = _build_client(monkeypatch, db, provider=RecordingProvider(ok=False))

    response = client.post(f"/api/whatsapp/orders/{order.id}/tracking-notification")

    assert response.status_code == 500
    assert response.json()["error_kind"] == "provider"
