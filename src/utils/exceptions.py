"""
커스텀 예외 클래스 정의

애플리케이션 전역에서 사용하는 예외 클래스를 정의합니다.
"""

from typing import Optional, Any
from fastapi import status


class AppException(Exception):
    """
    애플리케이션 기본 예외 클래스

    모든 커스텀 예외는 이 클래스를 상속받습니다.
    """

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        error_code: str = "app_error",
        details: Optional[dict[str, Any]] = None,
    ):
        self.message = message
        self.status_code = status_code
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(AppException):
    """
    입력 검증 실패 예외

    사용자 입력이 유효하지 않을 때 발생합니다.
    """

    def __init__(
        self,
        message: str = "Invalid input data",
        field: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        if field:
            details = details or {}
            details["field"] = field

        super().__init__(
            message=message,
            status_code=status.HTTP_400_BAD_REQUEST,
            error_code="validation_error",
            details=details,
        )


class NotFoundException(AppException):
    """
    리소스를 찾을 수 없을 때 발생하는 예외
    """

    def __init__(
        self,
        resource: str = "Resource",
        resource_id: Optional[str] = None,
        message: Optional[str] = None,
    ):
        if message is None:
            message = f"{resource} not found"

        super().__init__(
            message=message,
            status_code=status.HTTP_404_NOT_FOUND,
            error_code="not_found",
            details={"resource": resource, "resource_id": resource_id},
        )


class ForbiddenException(AppException):
    """
    권한 부족 예외 (403 Forbidden)
    """

    def __init__(self, message: str = "Access denied"):
        super().__init__(
            message=message,
            status_code=status.HTTP_403_FORBIDDEN,
            error_code="forbidden",
        )


class ConflictException(AppException):
    """
    리소스 충돌 예외 (409 Conflict)

    예: 이미 존재하는 쿠폰 코드로 생성 시도
    """

    def __init__(
        self,
        message: str = "The request conflicts with the current state of the resource",
        error_code: str = "conflict",
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(
            message=message,
            status_code=status.HTTP_409_CONFLICT,
            error_code=error_code,
            details=details,
        )


class BusinessRuleException(AppException):
    """
    비즈니스 규칙 위반 예외

    예: 사용 한도 초과, 취소된 주문에 쿠폰 적용 등
    """

    def __init__(
        self,
        message: str,
        rule: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        if rule:
            details = details or {}
            details["rule"] = rule

        super().__init__(
            message=message,
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            error_code="business_rule_violation",
            details=details,
        )


class DatabaseException(AppException):
    """
    데이터베이스 오류 예외
    """

    def __init__(
        self,
        message: str = "A database error occurred",
        operation: Optional[str] = None,
    ):
        details = {}
        if operation:
            details["operation"] = operation

        super().__init__(
            message=message,
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            error_code="database_error",
            details=details,
        )


# 쿠폰 도메인 예외 클래스


class CouponNotFoundException(NotFoundException):
    """쿠폰을 찾을 수 없을 때"""

    def __init__(self, coupon_id: Optional[Any] = None):
        super().__init__(
            resource="Coupon",
            resource_id=str(coupon_id) if coupon_id is not None else None,
            message="Coupon not found",
        )


class DuplicateCouponCodeException(ConflictException):
    """쿠폰 코드 중복 (UNIQUE 제약 위반)"""

    def __init__(self, code: str):
        super().__init__(
            message="Coupon code already exists",
            error_code="duplicate_coupon_code",
            details={"code": code},
        )


class CouponInUseException(ConflictException):
    """사용 이력이 있는 쿠폰의 물리 삭제 시도"""

    def __init__(self, coupon_id: int, used_count: int):
        super().__init__(
            message="Coupon has already been redeemed and cannot be deleted; deactivate it instead",
            error_code="coupon_in_use",
            details={"coupon_id": coupon_id, "used_count": used_count},
        )


class CouponUsageLimitException(BusinessRuleException):
    """전체 사용 한도 도달 (동시 사용 경합 포함)"""

    def __init__(self, coupon_id: int):
        super().__init__(
            message="Coupon usage limit reached",
            rule="coupon_usage_limit",
            details={"coupon_id": coupon_id},
        )


class CouponUserLimitException(BusinessRuleException):
    """사용자별 사용 한도 도달 (동시 사용 경합 포함)"""

    def __init__(self, coupon_id: int):
        super().__init__(
            message="You have reached the usage limit for this coupon",
            rule="coupon_user_limit",
            details={"coupon_id": coupon_id},
        )


class CouponRejectedException(BusinessRuleException):
    """쿠폰 검증 실패로 사용 불가"""

    def __init__(self, code: str, reason: str):
        super().__init__(
            message=reason,
            rule="coupon_validation",
            details={"code": code},
        )


class OrderNotFoundException(NotFoundException):
    """주문을 찾을 수 없을 때"""

    def __init__(self, order_id: str):
        super().__init__(resource="Order", resource_id=order_id, message="Order not found")
