"""
사용자(User) 모델

목적: 인증 서비스에서 발급한 토큰의 주체 (고객 및 관리자 계정)
"""

from enum import Enum
from sqlalchemy import Column, String, DateTime, Uuid, CheckConstraint
from sqlalchemy.orm import relationship
import uuid

from .base import Base, utc_now


class UserRole(str, Enum):
    """사용자 역할"""

    CUSTOMER = "customer"
    ADMIN = "admin"


class UserStatus(str, Enum):
    """계정 상태"""

    ACTIVE = "active"
    SUSPENDED = "suspended"
    DELETED = "deleted"


class User(Base):
    """사용자 모델"""

    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    name = Column(String(100), nullable=False)
    role = Column(
        String(50),
        nullable=False,
        default=UserRole.CUSTOMER.value,
    )
    status = Column(
        String(50),
        nullable=False,
        default=UserStatus.ACTIVE.value,
        index=True,
    )
    created_at = Column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (
        CheckConstraint("role IN ('customer', 'admin')", name="check_user_role"),
        CheckConstraint(
            "status IN ('active', 'suspended', 'deleted')", name="check_user_status"
        ),
    )

    # 관계
    orders = relationship("Order", back_populates="user", lazy="dynamic")

    def __repr__(self):
        return f"<User(id={self.id}, email={self.email}, role={self.role})>"

    def is_active(self) -> bool:
        """활성 계정 여부"""
        return self.status == UserStatus.ACTIVE.value
