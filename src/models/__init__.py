"""
데이터베이스 모델 패키지

이 패키지는 모든 SQLAlchemy 모델을 관리합니다.
새로운 모델을 추가할 때는 이 파일에서 import하여 Alembic이 자동으로 감지할 수 있도록 합니다.
"""

from .base import Base, get_db, close_db, utc_now
from .user import User, UserRole, UserStatus
from .order import Order, OrderStatus
from .coupon import Coupon, DiscountType
from .coupon_usage import CouponUsage
from .admin_activity_log import AdminActivityLog, AdminAction

__all__ = [
    "Base",
    "get_db",
    "close_db",
    "utc_now",
    "User",
    "UserRole",
    "UserStatus",
    "Order",
    "OrderStatus",
    "Coupon",
    "DiscountType",
    "CouponUsage",
    "AdminActivityLog",
    "AdminAction",
]
