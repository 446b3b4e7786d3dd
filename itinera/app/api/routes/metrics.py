"""Prometheus metrics endpoint."""

from fastapi import APIRouter, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

router = APIRouter()


@router.get("/metrics")
async def metrics() -> Response:
    """Prometheus metrics endpoint.

    Exposes all registered metrics, including:
    - auth_resolutions_total{outcome}
    - itinerary_mutations_total{operation, outcome}
    - itinerary_mutation_latency_ms{operation}
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
