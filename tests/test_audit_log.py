from sqlalchemy.exc import OperationalError

from order_confirm.models.whatsapp_log import DIRECTION_OUTBOUND, WhatsAppLog
from order_confirm.services.audit_log import append_whatsapp_log
from tests.fixtures_data import build_session, make_order


class _BrokenSession:
    def __init__(self):
        self.rolled_back = False

    def add(self, _entry):
        return None

    def commit(self):
        raise OperationalError("INSERT INTO whatsapp_logs", {}, Exception("disk full"))

    def rollback(self):
        self.rolled_back = True


def test_append_persists_sanitized_payload():
    db = build_session()
    order = make_order(db)

    entry = append_whatsapp_log(
        db,
        direction=DIRECTION_OUTBOUND,
        order_id=order.id,
        phone_e164="+212612345678",
        locale="fr",
        template_name="order_confirm",
        payload={"to": "212612345678", "access_token": "secret-value-9876"},
        response_status=200,
        wa_message_id="wamid.1",
    )

    assert entry is not None
    stored = db.query(WhatsAppLog).one()
    assert stored.payload == {"to": "212612345678", "access_token": "****9876"}
    assert stored.created_at is not None


def test_append_failure_is_swallowed_and_rolled_back():
    db = _BrokenSession()

    entry = append_whatsapp_log(db, direction=DIRECTION_OUTBOUND, phone_e164="+212612345678", response_status=0)

    assert entry is None
    assert db.rolled_back is True
