"""
관리자 쿠폰 관리 API

관리자가 쿠폰을 생성, 수정, 삭제하고 사용 현황을 조회하는 API 엔드포인트
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, Field, field_validator, model_validator

from src.api.dependencies import get_coupon_service
from src.api.schemas.coupon_schemas import (
    CodeAvailabilityResponse,
    CouponAnalyticsResponse,
    CouponAuditResponse,
    CouponListResponse,
    CouponResponse,
    CouponStatsResponse,
    CouponUsageResponse,
    GenerateCodeRequest,
    GenerateCodeResponse,
)
from src.config import get_settings
from src.middleware.authorization import require_permission, Permission
from src.models.coupon import DiscountType
from src.services.coupon_service import CouponService
from src.utils.exceptions import CouponNotFoundException

router = APIRouter(prefix="/v1/admin/coupons", tags=["Admin - Coupons"])

settings = get_settings()

# 수정 요청에서 null로 지울 수 없는 필드
NON_NULLABLE_FIELDS = (
    "code",
    "name",
    "discount_type",
    "discount_value",
    "first_time_customers_only",
    "is_active",
    "is_public",
)


# ===== Request 스키마 =====


class CouponCreateRequest(BaseModel):
    """쿠폰 생성 요청"""

    code: str = Field(
        ...,
        min_length=1,
        max_length=settings.COUPON_CODE_MAX_LENGTH,
        description="쿠폰 코드 (대문자로 저장)",
    )
    name: str = Field(..., min_length=1, max_length=200, description="쿠폰 이름")
    description: Optional[str] = Field(None, description="설명")
    discount_type: DiscountType = Field(..., description="할인 유형")
    discount_value: Decimal = Field(
        default=Decimal("0"), ge=0, description="할인 값 (% 또는 금액)"
    )
    minimum_amount: Optional[Decimal] = Field(None, ge=0, description="최소 주문 금액")
    usage_limit: Optional[int] = Field(None, ge=0, description="전체 사용 한도")
    usage_limit_per_user: Optional[int] = Field(
        None, ge=0, description="사용자별 사용 한도"
    )
    valid_from: Optional[datetime] = Field(None, description="사용 가능 시작일")
    valid_to: Optional[datetime] = Field(None, description="사용 가능 종료일")
    applicable_products: Optional[List[int]] = Field(None, description="적용 상품 ID")
    applicable_categories: Optional[List[int]] = Field(
        None, description="적용 카테고리 ID"
    )
    excluded_products: Optional[List[int]] = Field(None, description="제외 상품 ID")
    excluded_categories: Optional[List[int]] = Field(
        None, description="제외 카테고리 ID"
    )
    first_time_customers_only: bool = Field(False, description="첫 구매 고객 전용")
    is_active: bool = Field(True, description="활성화 여부")
    is_public: bool = Field(True, description="공개 여부")
    metadata: Optional[Dict[str, Any]] = Field(None, description="추가 정보")

    @field_validator("code")
    @classmethod
    def validate_code(cls, v):
        if not v.strip():
            raise ValueError("쿠폰 코드는 공백일 수 없습니다")
        return v.strip().upper()

    @model_validator(mode="after")
    def validate_rules(self):
        if (
            self.discount_type == DiscountType.PERCENTAGE
            and self.discount_value > 100
        ):
            raise ValueError("정률 할인은 100%를 초과할 수 없습니다")
        if self.valid_from and self.valid_to and self.valid_to < self.valid_from:
            raise ValueError("종료일은 시작일 이후여야 합니다")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "code": "SAVE10",
                "name": "10% 할인",
                "discount_type": "percentage",
                "discount_value": 10,
                "usage_limit": 100,
                "usage_limit_per_user": 1,
                "valid_to": "2026-12-31T23:59:59",
            }
        }


class CouponUpdateRequest(BaseModel):
    """쿠폰 수정 요청 (모든 필드 선택 사항, 전달한 필드만 반영)"""

    code: Optional[str] = Field(
        None, min_length=1, max_length=settings.COUPON_CODE_MAX_LENGTH
    )
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = None
    discount_type: Optional[DiscountType] = None
    discount_value: Optional[Decimal] = Field(None, ge=0)
    minimum_amount: Optional[Decimal] = Field(None, ge=0)
    usage_limit: Optional[int] = Field(None, ge=0)
    usage_limit_per_user: Optional[int] = Field(None, ge=0)
    valid_from: Optional[datetime] = None
    valid_to: Optional[datetime] = None
    applicable_products: Optional[List[int]] = None
    applicable_categories: Optional[List[int]] = None
    excluded_products: Optional[List[int]] = None
    excluded_categories: Optional[List[int]] = None
    first_time_customers_only: Optional[bool] = None
    is_active: Optional[bool] = None
    is_public: Optional[bool] = None
    metadata: Optional[Dict[str, Any]] = None

    @model_validator(mode="after")
    def reject_null_required_fields(self):
        for field in NON_NULLABLE_FIELDS:
            if field in self.model_fields_set and getattr(self, field) is None:
                raise ValueError(f"{field} 값은 null로 변경할 수 없습니다")
        return self

    class Config:
        json_schema_extra = {"example": {"is_active": False}}


# ===== API 엔드포인트 =====


@router.get(
    "",
    response_model=CouponListResponse,
    summary="쿠폰 목록",
)
async def list_coupons(
    active_only: bool = Query(False, description="현재 사용 가능한 쿠폰만 조회"),
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(require_permission(Permission.COUPON_READ)),
):
    """
    쿠폰 목록을 최신순으로 조회합니다.

    **필요 권한**: COUPON_READ
    """
    if active_only:
        coupons = await service.repository.list_active_coupons(service.clock())
    else:
        coupons = await service.repository.list_coupons()
    return {"coupons": coupons, "total_count": len(coupons)}


@router.get("/stats", response_model=CouponStatsResponse, summary="쿠폰 현황 요약")
async def get_coupon_stats(
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(require_permission(Permission.COUPON_READ)),
):
    """활성 쿠폰 수, 만료되었지만 활성 상태인 쿠폰 수, 총 사용 횟수"""
    return await service.get_stats()


@router.get(
    "/analytics",
    response_model=List[CouponAnalyticsResponse],
    summary="전체 쿠폰 사용 통계",
)
async def get_all_coupons_analytics(
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(require_permission(Permission.COUPON_READ)),
):
    return await service.analytics.get_all_coupons_analytics()


@router.get("/audit", response_model=CouponAuditResponse, summary="쿠폰 정합성 점검")
async def audit_coupons(
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(require_permission(Permission.COUPON_READ)),
):
    """
    쿠폰 데이터 정합성을 점검합니다.

    - warning: 만료/한도 도달 후에도 활성 상태, 시작일이 미래인 비활성 쿠폰
    - error: used_count와 사용 이력 건수 불일치
    """
    return await service.audit()


@router.get(
    "/code-availability",
    response_model=CodeAvailabilityResponse,
    summary="쿠폰 코드 중복 확인",
)
async def check_code_availability(
    code: str = Query(..., min_length=1, max_length=settings.COUPON_CODE_MAX_LENGTH),
    exclude_id: Optional[int] = Query(None, description="제외할 쿠폰 ID (수정 시)"),
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(require_permission(Permission.COUPON_READ)),
):
    available = await service.repository.is_code_available(code, exclude_id=exclude_id)
    return {"code": code.strip().upper(), "available": available}


@router.post(
    "/generate-code",
    response_model=GenerateCodeResponse,
    summary="쿠폰 코드 자동 생성",
)
async def generate_code(
    request: GenerateCodeRequest,
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(require_permission(Permission.COUPON_CREATE)),
):
    """쿠폰 이름을 기반으로 중복되지 않는 코드를 생성합니다 (저장하지 않음)."""
    code = await service.repository.generate_unique_code(
        request.name,
        base_length=settings.COUPON_GENERATED_CODE_BASE_LENGTH,
        max_length=settings.COUPON_GENERATED_CODE_MAX_LENGTH,
    )
    return {"code": code}


@router.get("/{coupon_id}", response_model=CouponResponse, summary="쿠폰 상세")
async def get_coupon(
    coupon_id: int,
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(require_permission(Permission.COUPON_READ)),
):
    coupon = await service.repository.get_coupon_by_id(coupon_id)
    if coupon is None:
        raise CouponNotFoundException(coupon_id)
    return coupon


@router.post(
    "",
    response_model=CouponResponse,
    status_code=status.HTTP_201_CREATED,
    summary="쿠폰 생성",
)
async def create_coupon(
    request: CouponCreateRequest,
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(require_permission(Permission.COUPON_CREATE)),
):
    """
    새로운 쿠폰을 생성합니다.

    **필요 권한**: COUPON_CREATE

    **에러**:
    - 409: 이미 존재하는 쿠폰 코드
    """
    return await service.repository.create_coupon(
        request.model_dump(), actor_id=current_user.id
    )


@router.patch("/{coupon_id}", response_model=CouponResponse, summary="쿠폰 수정")
async def update_coupon(
    coupon_id: int,
    request: CouponUpdateRequest,
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(require_permission(Permission.COUPON_UPDATE)),
):
    """
    쿠폰 정보를 수정합니다. 전달한 필드만 변경됩니다.

    **필요 권한**: COUPON_UPDATE

    **에러**:
    - 404: 쿠폰을 찾을 수 없음
    - 409: 변경한 코드가 이미 존재함
    """
    return await service.repository.update_coupon(
        coupon_id, request.model_dump(exclude_unset=True), actor_id=current_user.id
    )


@router.delete(
    "/{coupon_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="쿠폰 삭제",
)
async def delete_coupon(
    coupon_id: int,
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(require_permission(Permission.COUPON_DELETE)),
):
    """
    쿠폰을 삭제합니다 (물리 삭제).

    **필요 권한**: COUPON_DELETE

    **에러**:
    - 404: 쿠폰을 찾을 수 없음
    - 409: 이미 사용된 쿠폰 (비활성화로 대체)
    """
    await service.repository.delete_coupon(coupon_id, actor_id=current_user.id)
    return None


@router.get(
    "/{coupon_id}/usage",
    response_model=List[CouponUsageResponse],
    summary="쿠폰 사용 이력",
)
async def get_coupon_usage(
    coupon_id: int,
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(require_permission(Permission.COUPON_READ)),
):
    if await service.repository.get_coupon_by_id(coupon_id) is None:
        raise CouponNotFoundException(coupon_id)
    return await service.usage.get_coupon_usage(coupon_id)


@router.get(
    "/{coupon_id}/analytics",
    response_model=CouponAnalyticsResponse,
    summary="쿠폰 사용 통계",
)
async def get_coupon_analytics(
    coupon_id: int,
    service: CouponService = Depends(get_coupon_service),
    current_user=Depends(require_permission(Permission.COUPON_READ)),
):
    coupon = await service.repository.get_coupon_by_id(coupon_id)
    if coupon is None:
        raise CouponNotFoundException(coupon_id)
    return await service.analytics.get_coupon_analytics(coupon.id, coupon.code)
