"""
API 공통 의존성

요청마다 세션과 감사 로그 기록기를 주입한 CouponService를 생성합니다.
"""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.base import AsyncSessionLocal, get_db
from src.services.audit_log_service import AdminActivityLogWriter
from src.services.coupon_service import CouponService


def get_audit_log_writer() -> AdminActivityLogWriter:
    """관리자 활동 로그 기록기 (별도 세션 사용)"""
    return AdminActivityLogWriter(AsyncSessionLocal)


def get_coupon_service(
    db: AsyncSession = Depends(get_db),
    audit_log: AdminActivityLogWriter = Depends(get_audit_log_writer),
) -> CouponService:
    """요청 단위 쿠폰 서비스"""
    return CouponService(db, audit_log=audit_log)
