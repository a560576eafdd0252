"""
Metrics Router - Prometheus Endpoint
"""
from fastapi import APIRouter, Response

from ..metrics import get_metrics_text, get_metrics_content_type

router = APIRouter(tags=["Observability"])


@router.get("/metrics")
async def prometheus_metrics():
    """Prometheus metrics in text exposition format"""
    return Response(
        content=get_metrics_text(),
        media_type=get_metrics_content_type()
    )
