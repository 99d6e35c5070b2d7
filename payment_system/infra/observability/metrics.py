from prometheus_client import Counter, Gauge


ledger_entries_total = Counter("seller_ledger_entries_total", "Seller balance ledger entries written", ["type", "status"])

ledger_volume_total = Counter("seller_ledger_volume_total", "Seller balance ledger volume", ["currency", "type"])

payout_volume_total = Counter("payout_volume_total", "Total payout volume processed", ["currency", "status"])

payout_requests_total = Counter("payout_requests_total", "Payout requests", ["status"])

payment_events_total = Counter("payment_events_total", "External payment events handled", ["kind", "status"])

held_funds_released_total = Counter("held_funds_released_total", "Pending ledger credits released", ["currency"])

balance_reconciliation_drift = Gauge(
    "seller_balance_reconciliation_drift", "Absolute drift found by the last reconciliation", ["bucket"]
)
