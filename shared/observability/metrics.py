from prometheus_client import Counter

# Business Metrics
bebr_webhook_events_total = Counter(
    "bebr_webhook_events_total",
    "Inbound webhook deliveries",
    ["source", "topic", "outcome"] # topic: known topic/status, 'other' or 'unverified'; outcome: 'processed', 'ignored', 'rejected', 'failed'
)

bebr_checkout_sessions_total = Counter(
    "bebr_checkout_sessions_total",
    "Checkout sessions requested from external platforms",
    ["provider", "outcome"] # provider: 'midtrans' | 'shopify'
)

bebr_signups_total = Counter(
    "bebr_signups_total",
    "Accounts created"
)
