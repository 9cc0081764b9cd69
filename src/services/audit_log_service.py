"""
관리자 활동 로그 서비스

목적: 관리자 변경 작업을 admin_activity_logs 테이블에 기록

감사 로그는 본 작업과 별도의 세션/트랜잭션으로 기록되므로,
기록 실패가 이미 커밋된 쿠폰 변경을 되돌리지 않습니다.
"""

from typing import Any, Optional
from uuid import UUID
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from src.models.admin_activity_log import AdminActivityLog, AdminAction


class AdminActivityLogWriter:
    """관리자 활동 로그 기록기"""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self.session_factory = session_factory

    async def record(
        self,
        admin_id: UUID,
        action: AdminAction,
        entity: str,
        entity_id: Optional[int],
        old_values: Optional[dict[str, Any]] = None,
        new_values: Optional[dict[str, Any]] = None,
    ) -> None:
        """
        활동 로그 1건 기록

        Args:
            admin_id: 작업을 수행한 관리자 ID
            action: 작업 유형 (created, updated, deleted)
            entity: 대상 엔티티 이름 (예: "coupon")
            entity_id: 대상 엔티티 ID
            old_values: 변경 전 스냅샷
            new_values: 변경 후 스냅샷
        """
        async with self.session_factory() as session:
            session.add(
                AdminActivityLog(
                    admin_id=admin_id,
                    action=action.value,
                    entity=entity,
                    entity_id=entity_id,
                    old_values=old_values,
                    new_values=new_values,
                )
            )
            await session.commit()
