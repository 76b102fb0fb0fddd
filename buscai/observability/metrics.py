"""
Prometheus metrics for the marketplace API.
"""

from prometheus_client import Counter, Histogram, Gauge


# ── Search ───────────────────────────────────────────────────
searches_total = Counter(
    "buscai_searches_total",
    "Total company searches executed",
    ["source"],
)

search_duration_seconds = Histogram(
    "buscai_search_duration_seconds",
    "Time to resolve, persist and charge a search",
    buckets=[0.01, 0.05, 0.1, 0.25, 0.5, 1, 2, 5],
)

product_searches_total = Counter(
    "buscai_product_searches_total",
    "Total product offer searches",
)

# ── Auction ──────────────────────────────────────────────────
auction_slots_awarded_total = Counter(
    "buscai_auction_slots_awarded_total",
    "Paid positions awarded in searches",
    ["position"],
)

auction_candidates_skipped_total = Counter(
    "buscai_auction_candidates_skipped_total",
    "Auction candidates skipped during paid resolution",
    ["reason"],
)

# ── Billing ──────────────────────────────────────────────────
wallet_debits_total = Counter(
    "buscai_wallet_debits_total",
    "Wallet debit attempts",
    ["kind", "outcome"],
)

wallet_debited_cents_total = Counter(
    "buscai_wallet_debited_cents_total",
    "Cents debited from company wallets",
    ["kind"],
)

recharges_total = Counter(
    "buscai_recharges_total",
    "Wallet recharges by lifecycle step",
    ["status"],
)

subscription_renewals_total = Counter(
    "buscai_subscription_renewals_total",
    "Subscription renewal outcomes",
    ["outcome"],
)

# ── SerpAPI Import ───────────────────────────────────────────
serpapi_runs_total = Counter(
    "buscai_serpapi_runs_total",
    "SerpAPI import runs by final status",
    ["status"],
)

serpapi_records_total = Counter(
    "buscai_serpapi_records_total",
    "SerpAPI import records by outcome",
    ["status"],
)

external_api_latency_seconds = Histogram(
    "buscai_external_api_latency_seconds",
    "Latency of external API calls",
    ["provider", "operation"],
    buckets=[0.1, 0.5, 1, 2, 5, 10, 30],
)

# ── Notifications ────────────────────────────────────────────
notifications_total = Counter(
    "buscai_notifications_total",
    "Panel notifications by category and outcome",
    ["category", "outcome"],
)

# ── Worker ───────────────────────────────────────────────────
worker_jobs_active = Gauge(
    "buscai_worker_jobs_active",
    "Number of currently active worker jobs",
)
