"""
Prometheus 메트릭 수집 유틸리티

쿠폰 서비스의 주요 메트릭을 수집하고 Prometheus에 노출합니다.

주요 메트릭:
- HTTP 요청 수 및 응답 시간 (Counter, Histogram)
- 쿠폰 검증 결과 (Counter)
- 쿠폰 사용 처리 결과 및 할인 금액 (Counter)
- 에러 발생 수 (Counter)
"""

from prometheus_client import (
    Counter,
    Histogram,
    Gauge,
    generate_latest,
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
)


# 커스텀 레지스트리 (기본 메트릭 제외)
registry = CollectorRegistry()

# ===========================
# HTTP 요청 메트릭
# ===========================
http_requests_total = Counter(
    "upwear_http_requests_total",
    "전체 HTTP 요청 수",
    ["method", "endpoint", "status_code"],
    registry=registry,
)

http_request_duration_seconds = Histogram(
    "upwear_http_request_duration_seconds",
    "HTTP 요청 처리 시간 (초)",
    ["method", "endpoint"],
    buckets=(0.01, 0.025, 0.05, 0.075, 0.1, 0.25, 0.5, 0.75, 1.0, 2.5, 5.0),
    registry=registry,
)

http_requests_in_progress = Gauge(
    "upwear_http_requests_in_progress",
    "현재 처리 중인 HTTP 요청 수",
    ["method", "endpoint"],
    registry=registry,
)

# ===========================
# 쿠폰 메트릭
# ===========================
coupon_validations_total = Counter(
    "upwear_coupon_validations_total",
    "쿠폰 검증 요청 수",
    ["result"],  # valid, rejected, error
    registry=registry,
)

coupon_redemptions_total = Counter(
    "upwear_coupon_redemptions_total",
    "쿠폰 사용 처리 수",
    ["status"],  # success, limit_reached, failed
    registry=registry,
)

coupon_discount_amount_total = Counter(
    "upwear_coupon_discount_amount_total",
    "쿠폰으로 할인된 총 금액",
    registry=registry,
)

# ===========================
# 에러 메트릭
# ===========================
errors_total = Counter(
    "upwear_errors_total",
    "전체 에러 수",
    ["error_type", "severity"],
    registry=registry,
)


def get_metrics() -> bytes:
    """Prometheus 포맷 메트릭 반환"""
    return generate_latest(registry)


def get_content_type() -> str:
    """Prometheus 메트릭 Content-Type"""
    return CONTENT_TYPE_LATEST


def record_coupon_validation(result: str):
    """쿠폰 검증 결과 기록 (valid, rejected, error)"""
    coupon_validations_total.labels(result=result).inc()


def record_coupon_redemption(status: str, discount_amount: float = 0.0):
    """쿠폰 사용 처리 결과 기록"""
    coupon_redemptions_total.labels(status=status).inc()
    if status == "success" and discount_amount > 0:
        coupon_discount_amount_total.inc(discount_amount)


def record_error(error_type: str, severity: str = "error"):
    """에러 발생 기록"""
    errors_total.labels(error_type=error_type, severity=severity).inc()
