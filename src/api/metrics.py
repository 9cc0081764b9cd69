"""
Prometheus 메트릭 엔드포인트

/metrics 엔드포인트를 통해 Prometheus가 메트릭을 수집할 수 있도록 합니다.
"""

from fastapi import APIRouter, Response
from src.utils.prometheus_metrics import get_metrics, get_content_type

router = APIRouter(tags=["Monitoring"])


@router.get("/metrics")
async def metrics():
    """
    Prometheus 메트릭 노출 엔드포인트

    **사용법:**
    ```yaml
    # prometheus.yml
    scrape_configs:
      - job_name: 'upwear-coupons'
        scrape_interval: 15s
        static_configs:
          - targets: ['upwear-coupons:8000']
    ```

    **응답 예시:**
    ```
    # HELP upwear_coupon_validations_total 쿠폰 검증 요청 수
    # TYPE upwear_coupon_validations_total counter
    upwear_coupon_validations_total{result="valid"} 42.0
    upwear_coupon_validations_total{result="rejected"} 7.0
    ```
    """
    return Response(content=get_metrics(), media_type=get_content_type())
