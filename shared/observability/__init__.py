from .setup import REQUEST_ID_HEADER, setup_observability
from .metrics import (
    bebr_checkout_sessions_total,
    bebr_signups_total,
    bebr_webhook_events_total,
)
