# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Prometheus metrics — single source of truth for all metric objects.
Imported by services and middleware. Never instantiated in controllers.
"""
from prometheus_client import Counter, Gauge, Histogram

# ── HTTP Metrics (used by middleware) ──
REQUEST_COUNT = Counter(
    "substitutes_requests_total",
    "Total HTTP requests to the substitute tracker",
    ["method", "endpoint", "status"],
)
REQUEST_LATENCY = Histogram(
    "substitutes_request_duration_seconds",
    "Request latency in seconds",
    ["method", "endpoint"],
)
HTTP_ERRORS = Counter(
    "substitutes_http_errors_total",
    "Total HTTP error responses",
    ["method", "endpoint", "status"],
)

# ── Store Metrics (updated by service layer only) ──
RECORDS_INSERTED = Counter(
    "substitutes_records_inserted_total",
    "Records appended to a collection",
    ["collection"],
)
DUPLICATES_SKIPPED = Counter(
    "substitutes_duplicates_skipped_total",
    "Inserts skipped because the uniqueness key already existed",
    ["collection"],
)
REMOTE_SYNC_FAILURES = Counter(
    "substitutes_remote_sync_failures_total",
    "Remote backend operations that failed and were left to local storage",
    ["collection", "operation"],
)
REMOTE_BATCHES = Counter(
    "substitutes_remote_batches_total",
    "Batch inserts sent to the remote backend",
    ["collection", "outcome"],
)
COLLECTION_SIZE = Gauge(
    "substitutes_collection_size",
    "Records currently held per collection",
    ["collection"],
)
REMOTE_BACKEND_ACTIVE = Gauge(
    "substitutes_remote_backend_active",
    "1 when the remote backend is primary, 0 when running on local storage",
)
AVAILABILITY_LOOKUPS = Counter(
    "substitutes_availability_lookups_total",
    "Available-substitute queries served",
    ["kind"],
)
