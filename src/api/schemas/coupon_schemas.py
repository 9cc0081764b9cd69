"""
쿠폰 API 요청/응답 스키마
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID
from pydantic import BaseModel, Field, field_validator

from src.config import get_settings
from src.models.coupon import DiscountType

settings = get_settings()


def _deduplicate(ids: List[int]) -> List[int]:
    return list(dict.fromkeys(ids))


# ===== 고객용 스키마 =====


class PublicCouponResponse(BaseModel):
    """고객에게 노출되는 쿠폰 정보"""

    code: str = Field(..., description="쿠폰 코드")
    name: str = Field(..., description="쿠폰 이름")
    description: Optional[str] = Field(None, description="설명")
    discount_type: DiscountType = Field(..., description="할인 유형")
    discount_value: Decimal = Field(..., description="할인 값 (% 또는 금액)")
    minimum_amount: Optional[Decimal] = Field(None, description="최소 주문 금액")
    valid_to: Optional[datetime] = Field(None, description="사용 가능 종료일")
    first_time_customers_only: bool = Field(False, description="첫 구매 고객 전용")

    class Config:
        from_attributes = True


class PublicCouponListResponse(BaseModel):
    """공개 쿠폰 목록 응답"""

    coupons: List[PublicCouponResponse] = Field(..., description="쿠폰 목록")


class CouponValidateRequest(BaseModel):
    """쿠폰 검증 요청"""

    coupon_code: str = Field(
        ..., min_length=1, max_length=settings.COUPON_CODE_MAX_LENGTH, description="쿠폰 코드"
    )
    order_amount: Decimal = Field(..., ge=0, description="주문 금액")
    product_ids: List[int] = Field(default=[], description="주문 상품 ID 목록")
    category_ids: List[int] = Field(default=[], description="주문 상품 카테고리 ID 목록")

    @field_validator("product_ids", "category_ids")
    @classmethod
    def deduplicate_ids(cls, v):
        return _deduplicate(v)

    class Config:
        json_schema_extra = {
            "example": {
                "coupon_code": "SAVE10",
                "order_amount": 100,
                "product_ids": [101, 102],
                "category_ids": [7],
            }
        }


class CouponValidateResponse(BaseModel):
    """쿠폰 검증 응답"""

    valid: bool = Field(..., description="쿠폰 사용 가능 여부")
    discount_amount: Decimal = Field(..., description="할인 금액")
    final_amount: Decimal = Field(..., description="할인 후 최종 금액")
    error_message: Optional[str] = Field(None, description="사용 불가능한 경우 사유")
    coupon: Optional[PublicCouponResponse] = Field(None, description="쿠폰 정보")


class CouponRedeemRequest(BaseModel):
    """주문에 쿠폰 적용 요청"""

    coupon_code: str = Field(
        ..., min_length=1, max_length=settings.COUPON_CODE_MAX_LENGTH, description="쿠폰 코드"
    )
    order_id: UUID = Field(..., description="주문 ID")
    product_ids: List[int] = Field(default=[], description="주문 상품 ID 목록")
    category_ids: List[int] = Field(default=[], description="주문 상품 카테고리 ID 목록")

    @field_validator("product_ids", "category_ids")
    @classmethod
    def deduplicate_ids(cls, v):
        return _deduplicate(v)


class CouponUsageResponse(BaseModel):
    """쿠폰 사용 이력"""

    id: int
    coupon_id: int
    user_id: Optional[UUID]
    order_id: UUID
    discount_amount: Decimal
    order_total: Decimal
    created_at: datetime

    class Config:
        from_attributes = True


# ===== 관리자용 스키마 =====


class CouponResponse(BaseModel):
    """쿠폰 상세 (관리자)"""

    id: int
    code: str
    name: str
    description: Optional[str]
    discount_type: DiscountType
    discount_value: Decimal
    minimum_amount: Optional[Decimal]
    usage_limit: Optional[int]
    usage_limit_per_user: Optional[int]
    used_count: int
    valid_from: Optional[datetime]
    valid_to: Optional[datetime]
    applicable_products: Optional[List[int]]
    applicable_categories: Optional[List[int]]
    excluded_products: Optional[List[int]]
    excluded_categories: Optional[List[int]]
    first_time_customers_only: bool
    is_active: bool
    is_public: bool
    metadata: Dict[str, Any] = Field(
        default_factory=dict, validation_alias="extra_metadata"
    )
    created_by: Optional[UUID]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CouponListResponse(BaseModel):
    """쿠폰 목록 응답 (관리자)"""

    coupons: List[CouponResponse]
    total_count: int


class CouponAnalyticsResponse(BaseModel):
    """쿠폰 사용 통계"""

    coupon_id: int
    coupon_code: str
    usage_count: int
    total_discount_given: Decimal
    revenue_generated: Decimal
    average_order_value: Decimal


class CouponStatsResponse(BaseModel):
    """쿠폰 현황 요약"""

    active_coupons: int = Field(..., description="활성 쿠폰 수")
    expired_coupons: int = Field(..., description="만료되었지만 활성 상태인 쿠폰 수")
    total_usage: int = Field(..., description="총 사용 횟수")


class CouponAuditIssue(BaseModel):
    """정합성 점검 항목"""

    coupon_id: int
    code: str
    severity: str = Field(..., description="warning 또는 error")
    message: str


class CouponAuditResponse(BaseModel):
    """쿠폰 데이터 정합성 점검 결과"""

    valid: bool
    errors: int
    issues: List[CouponAuditIssue]


class CodeAvailabilityResponse(BaseModel):
    """쿠폰 코드 사용 가능 여부"""

    code: str
    available: bool


class GenerateCodeRequest(BaseModel):
    """쿠폰 코드 자동 생성 요청"""

    name: str = Field(..., min_length=1, max_length=200, description="쿠폰 이름")


class GenerateCodeResponse(BaseModel):
    """자동 생성된 쿠폰 코드"""

    code: str
