"""
역할 기반 접근 제어 (RBAC) 미들웨어

사용자 역할에 따른 쿠폰 관리 권한을 제공합니다.
"""

from enum import Enum
from typing import List, Set
from fastapi import Depends

from src.middleware.auth import AuthorizationError, get_current_user
from src.models.user import User, UserRole


class Permission(str, Enum):
    """
    권한 정의

    세분화된 권한 단위로, 각 역할이 가질 수 있는 권한을 정의합니다.
    """

    # 쿠폰 관리
    COUPON_READ = "coupon:read"
    COUPON_CREATE = "coupon:create"
    COUPON_UPDATE = "coupon:update"
    COUPON_DELETE = "coupon:delete"

    # 쿠폰 사용 (고객)
    COUPON_REDEEM = "coupon:redeem"


# 역할별 권한 매핑
ROLE_PERMISSIONS: dict[UserRole, Set[Permission]] = {
    UserRole.CUSTOMER: {
        Permission.COUPON_REDEEM,
    },
    UserRole.ADMIN: set(Permission),  # 모든 권한
}


class RBACManager:
    """
    역할 기반 접근 제어 관리 클래스
    """

    @staticmethod
    def get_user_permissions(role: UserRole) -> Set[Permission]:
        """
        사용자 역할에 따른 권한 목록 반환

        Args:
            role: 사용자 역할

        Returns:
            Set[Permission]: 권한 집합
        """
        return ROLE_PERMISSIONS.get(role, set())

    @staticmethod
    def has_any_permission(
        user_role: UserRole, required_permissions: List[Permission]
    ) -> bool:
        """
        사용자가 여러 권한 중 하나라도 가지고 있는지 확인 (OR 조건)

        Args:
            user_role: 사용자 역할
            required_permissions: 필요한 권한 목록

        Returns:
            bool: 권한 보유 여부
        """
        user_permissions = RBACManager.get_user_permissions(user_role)
        return any(perm in user_permissions for perm in required_permissions)


def require_permission(*permissions: Permission):
    """
    특정 권한을 요구하는 의존성 팩토리

    Args:
        *permissions: 필요한 권한 목록 (OR 조건)

    Returns:
        Callable: FastAPI 의존성 함수

    Example:
        ```python
        @router.post("")
        async def create_coupon(
            current_user = Depends(require_permission(Permission.COUPON_CREATE))
        ):
            ...
        ```
    """

    async def permission_checker(
        current_user: User = Depends(get_current_user),
    ) -> User:
        try:
            user_role = UserRole(current_user.role)
        except ValueError:
            raise AuthorizationError(detail="Unknown user role")

        if not RBACManager.has_any_permission(user_role, list(permissions)):
            raise AuthorizationError(
                detail="This action requires one of the permissions: "
                f"{', '.join(p.value for p in permissions)}"
            )
        return current_user

    return permission_checker
