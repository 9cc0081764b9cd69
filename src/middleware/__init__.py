"""
미들웨어 패키지

인증, 권한, 메트릭 미들웨어를 제공합니다.
"""

from src.middleware.auth import (
    get_current_user,
    get_current_user_optional,
    AuthenticationError,
    AuthorizationError,
)

from src.middleware.authorization import (
    Permission,
    RBACManager,
    require_permission,
)

from src.middleware.prometheus import PrometheusMiddleware

__all__ = [
    # 인증
    "get_current_user",
    "get_current_user_optional",
    "AuthenticationError",
    "AuthorizationError",
    # 권한
    "Permission",
    "RBACManager",
    "require_permission",
    # 메트릭
    "PrometheusMiddleware",
]
