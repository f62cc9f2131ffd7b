"""Metrics Exposition: Prometheus text format for the app's private registry."""

from fastapi import APIRouter, Depends
from fastapi.responses import Response

from userapp.api.dependencies import get_metrics
from userapp.infrastructure.metrics import ServiceMetrics

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
async def metrics(service_metrics: ServiceMetrics = Depends(get_metrics)):
    body, content_type = service_metrics.render()
    return Response(content=body, media_type=content_type)
