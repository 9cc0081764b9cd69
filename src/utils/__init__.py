"""
유틸리티 패키지

보안, 로깅, 메트릭, 예외 처리 등의 공통 유틸리티를 제공합니다.
"""

from src.utils.security import JWTManager, create_access_token

from src.utils.logging import (
    setup_logging,
    get_logger,
    AuditLogger,
    audit_logger,
)

from src.utils.exceptions import (
    AppException,
    ValidationException,
    NotFoundException,
    ForbiddenException,
    ConflictException,
    BusinessRuleException,
    DatabaseException,
    # 쿠폰 전용
    CouponNotFoundException,
    DuplicateCouponCodeException,
    CouponInUseException,
    CouponUsageLimitException,
    CouponUserLimitException,
    CouponRejectedException,
    OrderNotFoundException,
)

__all__ = [
    # 보안
    "JWTManager",
    "create_access_token",
    # 로깅
    "setup_logging",
    "get_logger",
    "AuditLogger",
    "audit_logger",
    # 예외
    "AppException",
    "ValidationException",
    "NotFoundException",
    "ForbiddenException",
    "ConflictException",
    "BusinessRuleException",
    "DatabaseException",
    "CouponNotFoundException",
    "DuplicateCouponCodeException",
    "CouponInUseException",
    "CouponUsageLimitException",
    "CouponUserLimitException",
    "CouponRejectedException",
    "OrderNotFoundException",
]
