from __future__ import annotations

import re
from prometheus_client import Counter, Histogram


def normalize_path(path: str) -> str:
    """Reduce high-cardinality paths for metrics labels."""
    p = path or "/"

    # Namespaced serving resources
    p = re.sub(r"^(/apis/[^/]+/[^/]+/namespaces)/[^/]+", r"\1/:namespace", p)
    p = re.sub(r"^(/apis/.+/(?:configurations|revisions))/[^/]+$", r"\1/:name", p)

    return p


HTTP_REQUESTS_TOTAL = Counter(
    "conformance_http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

HTTP_REQUEST_DURATION_SECONDS = Histogram(
    "conformance_http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)
