"""
쿠폰 API 엔드포인트

공개 쿠폰 조회, 쿠폰 검증, 주문에 쿠폰 적용 기능을 제공합니다.
"""

from typing import Optional
from fastapi import APIRouter, Depends, status

from src.api.dependencies import get_coupon_service
from src.api.schemas.coupon_schemas import (
    CouponRedeemRequest,
    CouponUsageResponse,
    CouponValidateRequest,
    CouponValidateResponse,
    PublicCouponListResponse,
    PublicCouponResponse,
)
from src.middleware.auth import get_current_user, get_current_user_optional
from src.models.user import User
from src.services.coupon_service import CouponService

router = APIRouter(prefix="/v1/coupons", tags=["coupons"])


@router.get("/public", response_model=PublicCouponListResponse)
async def list_public_coupons(
    service: CouponService = Depends(get_coupon_service),
):
    """
    현재 사용 가능한 공개 쿠폰 목록

    활성화 상태이고 유효 기간 안에 있는 공개 쿠폰만 반환합니다. 로그인 불필요.
    """
    coupons = await service.list_public_coupons()
    return {"coupons": coupons}


@router.post("/validate", response_model=CouponValidateResponse)
async def validate_coupon(
    request: CouponValidateRequest,
    service: CouponService = Depends(get_coupon_service),
    current_user: Optional[User] = Depends(get_current_user_optional),
):
    """
    쿠폰 사용 가능 여부 확인

    주문 금액에 대해 쿠폰이 사용 가능한지 확인하고 할인 금액을 계산합니다.
    로그인한 경우 사용자별 사용 한도와 첫 구매 조건도 함께 검사합니다.

    **응답**:
    - `valid`: 사용 가능 여부
    - `discount_amount`: 할인 금액
    - `final_amount`: 할인 후 최종 금액
    - `error_message`: 사용 불가능한 경우 사유
    """
    result = await service.validate_coupon(
        request.coupon_code,
        user_id=current_user.id if current_user else None,
        order_amount=request.order_amount,
        product_ids=request.product_ids,
        category_ids=request.category_ids,
    )

    return CouponValidateResponse(
        valid=result.valid,
        discount_amount=result.discount_amount,
        final_amount=max(request.order_amount - result.discount_amount, 0),
        error_message=result.error_message,
        coupon=(
            PublicCouponResponse.model_validate(result.coupon)
            if result.valid
            else None
        ),
    )


@router.post(
    "/redeem",
    response_model=CouponUsageResponse,
    status_code=status.HTTP_201_CREATED,
)
async def redeem_coupon(
    request: CouponRedeemRequest,
    service: CouponService = Depends(get_coupon_service),
    current_user: User = Depends(get_current_user),
):
    """
    주문에 쿠폰 적용

    쿠폰을 다시 검증한 뒤 사용 횟수 증가와 사용 이력 기록을 하나의 트랜잭션으로 처리합니다.

    **오류 케이스**:
    - `401`: 로그인 필요
    - `403`: 다른 사용자의 주문
    - `404`: 주문 없음
    - `422`: 쿠폰 검증 실패, 사용 한도 도달, 취소된 주문
    """
    return await service.redeem_coupon(
        user_id=current_user.id,
        coupon_code=request.coupon_code,
        order_id=request.order_id,
        product_ids=request.product_ids,
        category_ids=request.category_ids,
    )
