"""
관리자 활동 로그(AdminActivityLog) 모델

목적: 관리자 변경 작업의 감사 기록 (변경 전/후 스냅샷)
"""

from enum import Enum
from sqlalchemy import Column, String, Text, Integer, DateTime, Index, Uuid

from .base import Base, utc_now
from .compat import JSONB


class AdminAction(str, Enum):
    """관리자 작업 유형"""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class AdminActivityLog(Base):
    """관리자 활동 로그 모델"""

    __tablename__ = "admin_activity_logs"

    id = Column(Integer, primary_key=True, autoincrement=True)
    admin_id = Column(Uuid, nullable=False, index=True)
    action = Column(String(50), nullable=False)
    entity = Column(String(50), nullable=False)
    entity_id = Column(Integer, nullable=True)
    old_values = Column(JSONB, nullable=True)
    new_values = Column(JSONB, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=utc_now)

    __table_args__ = (Index("idx_admin_activity_entity", "entity", "entity_id"),)

    def __repr__(self):
        return (
            f"<AdminActivityLog(id={self.id}, action={self.action}, "
            f"entity={self.entity}, entity_id={self.entity_id})>"
        )
