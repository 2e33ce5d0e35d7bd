from fastapi import APIRouter, Response

from utils.prometheus_metrics import get_prometheus_metrics

router = APIRouter(tags=["metrics"])


@router.get("/metrics")
def metrics():
    collector = get_prometheus_metrics()
    return Response(content=collector.generate_metrics(), media_type=collector.get_content_type())
