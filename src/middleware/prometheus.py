"""
Prometheus 메트릭 미들웨어

모든 HTTP 요청의 요청 수, 처리 시간, 동시 처리 수를 수집합니다.
"""

import re
import time
from typing import Callable

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from src.utils.prometheus_metrics import (
    http_requests_total,
    http_request_duration_seconds,
    http_requests_in_progress,
    errors_total,
)

UUID_SEGMENT = re.compile(
    r"/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}",
    flags=re.IGNORECASE,
)
NUMERIC_SEGMENT = re.compile(r"/\d+")


class PrometheusMiddleware(BaseHTTPMiddleware):
    """
    Prometheus 메트릭을 수집하는 FastAPI 미들웨어

    엔드포인트 라벨은 라우트 템플릿(예: /v1/admin/coupons/{coupon_id})을 사용하고,
    매칭되는 라우트가 없으면 ID 구간을 {id}로 치환해 카디널리티를 제한합니다.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        # /metrics 엔드포인트는 메트릭 수집에서 제외
        if request.url.path == "/metrics":
            return await call_next(request)

        method = request.method
        in_progress = http_requests_in_progress.labels(
            method=method, endpoint=normalize_path(request.url.path)
        )
        in_progress.inc()

        start_time = time.perf_counter()
        status_code = 500

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response

        except Exception as e:
            errors_total.labels(
                error_type=type(e).__name__, severity="critical"
            ).inc()
            raise

        finally:
            duration = time.perf_counter() - start_time
            # 라우팅 이후에야 scope에 route가 채워짐
            endpoint = self._get_endpoint_template(request)

            http_requests_total.labels(
                method=method, endpoint=endpoint, status_code=status_code
            ).inc()
            http_request_duration_seconds.labels(
                method=method, endpoint=endpoint
            ).observe(duration)
            in_progress.dec()

            if status_code >= 400:
                severity = "warning" if status_code < 500 else "error"
                errors_total.labels(
                    error_type=f"http_{status_code}", severity=severity
                ).inc()

    @staticmethod
    def _get_endpoint_template(request: Request) -> str:
        route = request.scope.get("route")
        if route is not None and hasattr(route, "path"):
            return route.path
        return normalize_path(request.url.path)


def normalize_path(path: str) -> str:
    """
    경로의 UUID/숫자 구간을 {id}로 치환

    예: /v1/admin/coupons/12/usage -> /v1/admin/coupons/{id}/usage
    """
    path = UUID_SEGMENT.sub("/{id}", path)
    return NUMERIC_SEGMENT.sub("/{id}", path)
