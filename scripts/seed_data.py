"""
데이터베이스 시드 데이터 생성 스크립트

개발 및 데모용 사용자, 주문, 쿠폰을 생성하고 테스트용 Access Token을 출력합니다.
"""

import asyncio
import uuid
from datetime import timedelta
from decimal import Decimal
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

import sys
from pathlib import Path
sys.path.append(str(Path(__file__).parent.parent))

from src.models import Base
from src.models.base import AsyncSessionLocal, engine, utc_now
from src.models.coupon import DiscountType
from src.models.order import Order, OrderStatus
from src.models.user import User, UserRole, UserStatus
from src.services.coupon_repository import CouponRepository
from src.utils.security import JWTManager
from src.config import get_settings

settings = get_settings()


async def create_users(session: AsyncSession) -> dict:
    """사용자 생성"""
    print("[INFO] 사용자 생성 중...")

    users_data = [
        {"email": "customer1@example.com", "name": "김철수", "role": UserRole.CUSTOMER},
        {"email": "customer2@example.com", "name": "이영희", "role": UserRole.CUSTOMER},
        {"email": "admin@upwear.com", "name": "관리자", "role": UserRole.ADMIN},
    ]

    users = {}
    for data in users_data:
        user = User(
            id=uuid.uuid4(),
            email=data["email"],
            name=data["name"],
            role=data["role"].value,
            status=UserStatus.ACTIVE.value,
        )
        session.add(user)
        users[data["email"]] = user

    await session.commit()
    print(f"[SUCCESS] {len(users)} 명 사용자 생성 완료")
    return users


async def create_orders(session: AsyncSession, users: dict) -> None:
    """주문 생성 (customer1은 기존 구매 이력 있음, customer2는 첫 구매 대상)"""
    print("[INFO] 주문 생성 중...")

    customer1 = users["customer1@example.com"]
    customer2 = users["customer2@example.com"]
    orders = [
        Order(
            order_number=f"ORD-SEED-{index:03d}",
            user_id=user.id,
            total_amount=Decimal(amount),
            status=status.value,
        )
        for index, (user, amount, status) in enumerate(
            [
                (customer1, "120.00", OrderStatus.DELIVERED),
                (customer1, "45.50", OrderStatus.PENDING),
                (customer2, "80.00", OrderStatus.PENDING),
            ],
            start=1,
        )
    ]
    session.add_all(orders)
    await session.commit()
    print(f"[SUCCESS] {len(orders)} 개 주문 생성 완료")


async def create_coupons(session: AsyncSession, admin: User) -> None:
    """쿠폰 생성"""
    print("[INFO] 쿠폰 생성 중...")

    now = utc_now()
    repository = CouponRepository(session)
    coupons_data = [
        {
            "code": "save10",
            "name": "10% 할인",
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": Decimal("10"),
            "usage_limit": 100,
            "usage_limit_per_user": 1,
            "valid_to": now + timedelta(days=30),
        },
        {
            "code": "WELCOME5",
            "name": "첫 구매 5달러 할인",
            "discount_type": DiscountType.FIXED_AMOUNT,
            "discount_value": Decimal("5"),
            "first_time_customers_only": True,
        },
        {
            "code": "FREESHIP",
            "name": "무료 배송",
            "discount_type": DiscountType.FREE_SHIPPING,
            "minimum_amount": Decimal("50"),
        },
        {
            "code": "VIP20",
            "name": "VIP 20% 할인 (비공개)",
            "discount_type": DiscountType.PERCENTAGE,
            "discount_value": Decimal("20"),
            "is_public": False,
            "excluded_categories": [3],
        },
    ]

    for data in coupons_data:
        await repository.create_coupon(data, actor_id=admin.id)

    print(f"[SUCCESS] {len(coupons_data)} 개 쿠폰 생성 완료")


async def main():
    """메인 실행 함수"""
    print("[START] 시드 데이터 생성 시작")
    print(f"[INFO] 데이터베이스: {settings.DATABASE_URL}")

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        print("[SUCCESS] 데이터베이스 테이블 생성/확인 완료")

        async with AsyncSessionLocal() as session:
            result = await session.execute(select(User).limit(1))
            if result.scalar():
                print("[WARNING] 이미 데이터가 존재합니다.")

                response = input("기존 데이터를 삭제하고 새로 생성하시겠습니까? (y/N): ")
                if response.lower() != 'y':
                    print("[SKIP] 시드 데이터 생성을 건너뜁니다.")
                    return

                print("[INFO] 기존 데이터 삭제 중...")
                # 외래 키 순서대로 삭제
                for table in ("admin_activity_logs", "coupon_usage", "coupons", "orders", "users"):
                    await session.execute(text(f"DELETE FROM {table}"))
                await session.commit()
                print("[SUCCESS] 기존 데이터 삭제 완료")

            users = await create_users(session)
            await create_orders(session, users)
            await create_coupons(session, users["admin@upwear.com"])

        print("[COMPLETE] 시드 데이터 생성 완료!")
        print("\n[테스트 Access Token (24시간)]")
        for email, user in users.items():
            token = JWTManager.create_access_token(
                {"sub": str(user.id), "role": user.role},
                expires_delta=timedelta(hours=24),
            )
            print(f"- {email} ({user.role}): {token}")

    except Exception as e:
        print(f"[ERROR] 시드 데이터 생성 실패: {e}")
        raise
    finally:
        await engine.dispose()


if __name__ == "__main__":
    asyncio.run(main())
