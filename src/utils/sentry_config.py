"""
Sentry 에러 트래킹 설정

실시간 에러 모니터링을 위한 Sentry SDK 설정

주요 기능:
- 예외 자동 캡처 및 전송
- 사용자/쿠폰 컨텍스트 추가
- 민감 정보 자동 마스킹
- 환경별 샘플링 비율 조정
"""

import logging
import re
from typing import Optional

import sentry_sdk
from sentry_sdk.integrations.fastapi import FastApiIntegration
from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
from sentry_sdk.integrations.logging import LoggingIntegration

from src.utils.logging import get_logger

logger = get_logger(__name__)

# 민감 키워드 목록
SENSITIVE_KEYS = [
    "password",
    "passwd",
    "token",
    "api_key",
    "secret",
    "authorization",
]


def init_sentry(
    dsn: Optional[str],
    environment: str = "development",
    release: str = "1.0.0",
    traces_sample_rate: float = 1.0,
) -> bool:
    """
    Sentry SDK 초기화

    Args:
        dsn: Sentry DSN. 없으면 초기화하지 않음 (로컬 개발 시)
        environment: 환경 이름 (development, staging, production)
        release: 릴리스 버전
        traces_sample_rate: 트랜잭션 샘플링 비율 (0.0 ~ 1.0)

    Returns:
        bool: 초기화 여부
    """
    if not dsn:
        logger.info("Sentry DSN이 설정되지 않았습니다. Sentry 모니터링이 비활성화됩니다.")
        return False

    # 환경별 샘플링 비율 자동 조정
    if environment == "production":
        traces_sample_rate = min(traces_sample_rate, 0.1)
    elif environment == "staging":
        traces_sample_rate = min(traces_sample_rate, 0.5)

    sentry_sdk.init(
        dsn=dsn,
        environment=environment,
        release=release,
        integrations=[
            FastApiIntegration(transaction_style="endpoint"),
            SqlalchemyIntegration(),  # 데이터베이스 쿼리 추적
            LoggingIntegration(
                level=logging.INFO,  # INFO 이상 로그 breadcrumb
                event_level=logging.ERROR,  # ERROR 이상만 이벤트로 전송
            ),
        ],
        traces_sample_rate=traces_sample_rate,
        send_default_pii=False,  # 개인정보 자동 전송 비활성화
        before_send=before_send_filter,
        before_breadcrumb=before_breadcrumb_filter,
        max_breadcrumbs=50,
        attach_stacktrace=True,
    )

    logger.info(
        f"Sentry 초기화 완료: environment={environment}, "
        f"traces_sample_rate={traces_sample_rate}"
    )
    return True


def before_send_filter(event, hint):
    """
    이벤트 전송 전 민감 정보 마스킹
    """
    if "request" in event:
        request = event["request"]

        if "data" in request:
            request["data"] = mask_sensitive_data(request["data"], SENSITIVE_KEYS)

        if "headers" in request:
            request["headers"] = mask_sensitive_data(
                request["headers"], SENSITIVE_KEYS
            )

    if "extra" in event:
        event["extra"] = mask_sensitive_data(event["extra"], SENSITIVE_KEYS)

    return event


def before_breadcrumb_filter(crumb, hint):
    """
    Breadcrumb 전송 전 SQL 쿼리의 민감 값 제거
    """
    if crumb.get("category") == "query" and "message" in crumb:
        crumb["message"] = re.sub(
            r"(password|token)\s*=\s*'[^']*'",
            r"\1='[Filtered]'",
            crumb["message"],
            flags=re.IGNORECASE,
        )
    return crumb


def mask_sensitive_data(data, sensitive_keys):
    """
    민감 데이터 마스킹 (재귀적)

    Args:
        data: 마스킹할 데이터 (dict, list 등)
        sensitive_keys: 민감 키워드 목록

    Returns:
        마스킹된 데이터
    """
    if isinstance(data, dict):
        masked = {}
        for key, value in data.items():
            if any(sensitive in str(key).lower() for sensitive in sensitive_keys):
                masked[key] = "[Filtered]"
            else:
                masked[key] = mask_sensitive_data(value, sensitive_keys)
        return masked

    if isinstance(data, list):
        return [mask_sensitive_data(item, sensitive_keys) for item in data]

    return data


def capture_exception_with_context(
    exception: Exception, user_id: Optional[str] = None, **extra
):
    """
    예외를 Sentry에 수동으로 전송 (추가 컨텍스트 포함)

    SDK가 초기화되지 않았으면 아무 동작도 하지 않습니다.

    Args:
        exception: 캡처할 예외
        user_id: 사용자 ID (선택)
        **extra: 추가 컨텍스트 정보 (쿠폰 코드 등)
    """
    with sentry_sdk.new_scope() as scope:
        if user_id:
            scope.set_user({"id": user_id})

        for key, value in extra.items():
            scope.set_extra(key, value)

        sentry_sdk.capture_exception(exception)
