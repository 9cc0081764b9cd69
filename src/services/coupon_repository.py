"""
쿠폰 저장소

목적: 쿠폰 생성/조회/수정/삭제 및 코드 중복 검사

생성/수정/삭제 시 관리자 활동 로그를 남기며, 로그 기록 실패는 본 작업을 실패시키지 않습니다.
"""

import re
from datetime import datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional
from uuid import UUID
from sqlalchemy import select, func, or_, and_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.coupon import Coupon
from src.models.coupon_usage import CouponUsage
from src.models.admin_activity_log import AdminAction
from src.services.audit_log_service import AdminActivityLogWriter
from src.utils.exceptions import (
    CouponInUseException,
    CouponNotFoundException,
    DatabaseException,
    DuplicateCouponCodeException,
    ValidationException,
)
from src.utils.logging import get_logger, audit_logger

logger = get_logger(__name__)

# 0 또는 빈 값이면 NULL(제한 없음)로 저장하는 필드
OPTIONAL_LIMIT_FIELDS = ("minimum_amount", "usage_limit", "usage_limit_per_user")
ID_LIST_FIELDS = (
    "applicable_products",
    "applicable_categories",
    "excluded_products",
    "excluded_categories",
)
DATETIME_FIELDS = ("valid_from", "valid_to")
UPDATABLE_FIELDS = (
    "code",
    "name",
    "description",
    "discount_type",
    "discount_value",
    *OPTIONAL_LIMIT_FIELDS,
    *DATETIME_FIELDS,
    *ID_LIST_FIELDS,
    "first_time_customers_only",
    "is_active",
    "is_public",
    "metadata",
)

UNIQUE_VIOLATION = "23505"
DEFAULT_CODE_BASE = "COUPON"


def _to_naive_utc(value: Optional[datetime]) -> Optional[datetime]:
    """timezone-aware datetime을 UTC naive datetime으로 변환"""
    if value is None or value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def _select_coupons():
    """
    쿠폰 조회 쿼리

    used_count는 ORM을 거치지 않는 UPDATE로 증가하므로
    세션에 이미 로드된 객체도 DB 값으로 다시 채웁니다.
    """
    return select(Coupon).execution_options(populate_existing=True)


def _is_unique_violation(error: IntegrityError) -> bool:
    """UNIQUE 제약 위반 여부 (PostgreSQL SQLSTATE 23505 / SQLite 메시지)"""
    orig = error.orig
    code = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
    if code == UNIQUE_VIOLATION:
        return True
    return "UNIQUE constraint failed" in str(orig)


class CouponRepository:
    """쿠폰 저장소"""

    def __init__(
        self,
        db: AsyncSession,
        audit_log: Optional[AdminActivityLogWriter] = None,
    ):
        self.db = db
        self.audit_log = audit_log

    # ===== 조회 =====

    async def get_coupon_by_id(self, coupon_id: int) -> Optional[Coupon]:
        """
        ID로 쿠폰 조회

        Args:
            coupon_id: 쿠폰 ID

        Returns:
            쿠폰 또는 None
        """
        result = await self.db.execute(_select_coupons().where(Coupon.id == coupon_id))
        return result.scalar_one_or_none()

    async def get_coupon_by_code(self, code: str) -> Optional[Coupon]:
        """
        쿠폰 코드로 쿠폰 조회 (대소문자 구분 없음)

        Args:
            code: 쿠폰 코드

        Returns:
            쿠폰 또는 None (없어도 예외를 발생시키지 않음)
        """
        result = await self.db.execute(
            _select_coupons().where(Coupon.code == Coupon.normalize_code(code))
        )
        return result.scalar_one_or_none()

    async def list_coupons(self) -> List[Coupon]:
        """전체 쿠폰 목록 (최신순)"""
        result = await self.db.execute(
            _select_coupons().order_by(Coupon.created_at.desc(), Coupon.id.desc())
        )
        return list(result.scalars().all())

    async def list_active_coupons(self, now: datetime) -> List[Coupon]:
        """
        현재 사용 가능한 쿠폰 목록

        활성화 상태이면서 유효 기간 안에 있는 쿠폰 (기간이 비어 있으면 제한 없음)
        """
        result = await self.db.execute(
            _select_coupons()
            .where(self._active_window_clause(now))
            .order_by(Coupon.created_at.desc(), Coupon.id.desc())
        )
        return list(result.scalars().all())

    async def list_public_coupons(self, now: datetime) -> List[Coupon]:
        """고객에게 노출되는 공개 쿠폰 목록"""
        result = await self.db.execute(
            _select_coupons()
            .where(and_(self._active_window_clause(now), Coupon.is_public.is_(True)))
            .order_by(Coupon.created_at.desc(), Coupon.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    def _active_window_clause(now: datetime):
        return and_(
            Coupon.is_active.is_(True),
            or_(Coupon.valid_from.is_(None), Coupon.valid_from <= now),
            or_(Coupon.valid_to.is_(None), Coupon.valid_to >= now),
        )

    async def count_usage(self, coupon_id: int) -> int:
        """쿠폰 사용 이력(원장) 건수"""
        result = await self.db.execute(
            select(func.count())
            .select_from(CouponUsage)
            .where(CouponUsage.coupon_id == coupon_id)
        )
        return result.scalar_one()

    # ===== 생성/수정/삭제 =====

    async def create_coupon(
        self, form: dict[str, Any], actor_id: Optional[UUID] = None
    ) -> Coupon:
        """
        쿠폰 생성

        Args:
            form: 쿠폰 입력 데이터
            actor_id: 생성한 관리자 ID

        Returns:
            생성된 쿠폰

        Raises:
            DuplicateCouponCodeException: 이미 존재하는 코드
        """
        code = self._normalize_required_code(form.get("code"))

        coupon = Coupon(
            code=code,
            name=form["name"],
            description=form.get("description") or None,
            discount_type=_enum_value(form["discount_type"]),
            discount_value=Decimal(str(form.get("discount_value") or 0)),
            minimum_amount=form.get("minimum_amount") or None,
            usage_limit=form.get("usage_limit") or None,
            usage_limit_per_user=form.get("usage_limit_per_user") or None,
            valid_from=_to_naive_utc(form.get("valid_from")),
            valid_to=_to_naive_utc(form.get("valid_to")),
            applicable_products=self._id_list(form.get("applicable_products")),
            applicable_categories=self._id_list(form.get("applicable_categories")),
            excluded_products=self._id_list(form.get("excluded_products")),
            excluded_categories=self._id_list(form.get("excluded_categories")),
            first_time_customers_only=bool(form.get("first_time_customers_only")),
            is_active=(
                form["is_active"] if form.get("is_active") is not None else True
            ),
            is_public=(
                form["is_public"] if form.get("is_public") is not None else True
            ),
            extra_metadata=form.get("metadata") or {},
            created_by=actor_id,
            used_count=0,
        )

        self.db.add(coupon)
        await self._commit(code, operation="create_coupon")
        await self.db.refresh(coupon)

        logger.info(f"쿠폰 생성: id={coupon.id}, code={coupon.code}")
        await self._log_activity(
            actor_id, AdminAction.CREATED, coupon.id, None, coupon.to_snapshot()
        )
        return coupon

    async def update_coupon(
        self,
        coupon_id: int,
        form: dict[str, Any],
        actor_id: Optional[UUID] = None,
    ) -> Coupon:
        """
        쿠폰 수정 (전달된 필드만 반영)

        Args:
            coupon_id: 쿠폰 ID
            form: 변경할 필드만 담은 입력 데이터
            actor_id: 수정한 관리자 ID

        Returns:
            수정된 쿠폰

        Raises:
            CouponNotFoundException: 쿠폰이 없는 경우
            DuplicateCouponCodeException: 변경한 코드가 이미 존재하는 경우
        """
        coupon = await self.get_coupon_by_id(coupon_id)
        if coupon is None:
            raise CouponNotFoundException(coupon_id)

        old_snapshot = coupon.to_snapshot()

        for field, value in form.items():
            if field not in UPDATABLE_FIELDS:
                continue
            if field == "code":
                value = self._normalize_required_code(value)
            elif field == "discount_type":
                value = _enum_value(value)
            elif field in OPTIONAL_LIMIT_FIELDS:
                value = value or None
            elif field in DATETIME_FIELDS:
                value = _to_naive_utc(value)
            elif field in ID_LIST_FIELDS:
                value = self._id_list(value)
            elif field == "metadata":
                field, value = "extra_metadata", value or {}
            setattr(coupon, field, value)

        await self._commit(coupon.code, operation="update_coupon")
        await self.db.refresh(coupon)

        logger.info(f"쿠폰 수정: id={coupon.id}, fields={sorted(form.keys())}")
        await self._log_activity(
            actor_id, AdminAction.UPDATED, coupon.id, old_snapshot, coupon.to_snapshot()
        )
        return coupon

    async def delete_coupon(
        self, coupon_id: int, actor_id: Optional[UUID] = None
    ) -> None:
        """
        쿠폰 삭제 (물리 삭제)

        사용 이력이 있는 쿠폰은 원장 보존을 위해 삭제할 수 없으며 비활성화해야 합니다.

        Raises:
            CouponNotFoundException: 쿠폰이 없는 경우
            CouponInUseException: 이미 사용된 쿠폰인 경우
        """
        coupon = await self.get_coupon_by_id(coupon_id)
        if coupon is None:
            raise CouponNotFoundException(coupon_id)

        usage_count = await self.count_usage(coupon_id)
        if coupon.used_count > 0 or usage_count > 0:
            raise CouponInUseException(coupon_id, max(coupon.used_count, usage_count))

        old_snapshot = coupon.to_snapshot()
        await self.db.delete(coupon)
        await self._commit(coupon.code, operation="delete_coupon")

        logger.info(f"쿠폰 삭제: id={coupon_id}, code={old_snapshot['code']}")
        await self._log_activity(
            actor_id, AdminAction.DELETED, coupon_id, old_snapshot, None
        )

    # ===== 코드 유틸리티 =====

    async def is_code_available(
        self, code: str, exclude_id: Optional[int] = None
    ) -> bool:
        """
        쿠폰 코드 사용 가능 여부 (중복 검사)

        Args:
            code: 확인할 쿠폰 코드
            exclude_id: 검사에서 제외할 쿠폰 ID (수정 시 자기 자신)
        """
        query = select(Coupon.id).where(Coupon.code == Coupon.normalize_code(code))
        if exclude_id is not None:
            query = query.where(Coupon.id != exclude_id)
        result = await self.db.execute(query)
        return result.first() is None

    async def generate_unique_code(
        self,
        base_name: str,
        base_length: int = 8,
        max_length: int = 12,
    ) -> str:
        """
        이름을 기반으로 중복되지 않는 쿠폰 코드 생성

        영문/숫자만 남겨 대문자로 바꾸고 앞 8자를 사용하며,
        중복이면 1, 2, ... 를 붙여 최대 12자까지 시도합니다.

        Example:
            "Summer Sale 2025" -> "SUMMERSA", 중복 시 "SUMMERSA1"
        """
        base = re.sub(r"[^A-Z0-9]", "", base_name.upper())[:base_length]
        if not base:
            base = DEFAULT_CODE_BASE

        candidate = base
        counter = 1
        while not await self.is_code_available(candidate):
            candidate = f"{base}{counter}"[:max_length]
            counter += 1
        return candidate

    # ===== 내부 메서드 =====

    @staticmethod
    def _normalize_required_code(code: Optional[str]) -> str:
        if code is None or not code.strip():
            raise ValidationException("Coupon code is required", field="code")
        return Coupon.normalize_code(code)

    @staticmethod
    def _id_list(values) -> Optional[List[int]]:
        if not values:
            return None
        return [int(value) for value in values]

    async def _commit(self, code: str, operation: str) -> None:
        """커밋 및 DB 오류 변환"""
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            if _is_unique_violation(e):
                raise DuplicateCouponCodeException(code)
            logger.warning(f"쿠폰 제약 조건 위반 ({operation}): {e.orig}")
            raise ValidationException("Coupon data violates a database constraint")
        except SQLAlchemyError as e:
            await self.db.rollback()
            logger.error(f"쿠폰 저장 실패 ({operation}): {e}", exc_info=True)
            raise DatabaseException(operation=operation)

    async def _log_activity(
        self,
        actor_id: Optional[UUID],
        action: AdminAction,
        coupon_id: Optional[int],
        old_values: Optional[dict],
        new_values: Optional[dict],
    ) -> None:
        """
        활동 로그 기록 (best-effort)

        관리자 ID가 없으면 기록하지 않으며, 기록 실패는 로그만 남기고 무시합니다.
        """
        audit_logger.log_event(
            event_type=f"coupon.{action.value}",
            user_id=str(actor_id) if actor_id else None,
            resource_type="coupon",
            resource_id=str(coupon_id),
            action=action.value,
        )

        if actor_id is None or self.audit_log is None:
            return

        try:
            await self.audit_log.record(
                admin_id=actor_id,
                action=action,
                entity="coupon",
                entity_id=coupon_id,
                old_values=old_values,
                new_values=new_values,
            )
        except Exception as e:
            logger.warning(f"관리자 활동 로그 기록 실패 (무시): {e}")
