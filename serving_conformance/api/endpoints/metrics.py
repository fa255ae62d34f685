"""Metrics endpoints.

/metrics is the Prometheus scrape endpoint; /metrics/snapshot exposes the
in-process counters as JSON for quick inspection.
"""
from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from serving_conformance.core.observability.metrics import snapshot_named, snapshot_polls

router = APIRouter()


@router.get("/metrics", include_in_schema=False)
def prometheus_metrics() -> Response:
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.get("/metrics/snapshot")
def metrics_snapshot():
    body = {"polls": snapshot_polls()}
    body.update(snapshot_named())
    return body
