from order_confirm.models.order import Order
from order_confirm.models.whatsapp_log import WhatsAppLog
