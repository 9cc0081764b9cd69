"""
JWT 인증 미들웨어

FastAPI 의존성 주입을 활용한 JWT 인증을 제공합니다.
토큰은 인증 서비스가 발급하며, 이 서비스는 토큰 검증과 사용자 조회만 수행합니다.
"""

from typing import Optional
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.models.base import get_db
from src.models.user import User
from src.utils.security import JWTManager
from src.utils.logging import get_logger

logger = get_logger(__name__)

# HTTP Bearer 토큰 스킴 (Authorization: Bearer <token>)
security = HTTPBearer(auto_error=False)


class AuthenticationError(HTTPException):
    """인증 실패 예외"""

    def __init__(self, detail: str = "Authentication failed"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )


class AuthorizationError(HTTPException):
    """권한 부족 예외"""

    def __init__(self, detail: str = "Access denied"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail,
        )


def _extract_user_id(token: str) -> UUID:
    """
    토큰 검증 후 사용자 ID 추출

    Raises:
        AuthenticationError: 토큰이 유효하지 않은 경우
    """
    try:
        payload = JWTManager.decode_token(token)
    except ValueError as e:
        raise AuthenticationError(detail=str(e))

    # access token만 허용
    if not JWTManager.verify_token_type(payload, "access"):
        raise AuthenticationError(detail="Invalid token type")

    subject: Optional[str] = payload.get("sub")
    if subject is None:
        raise AuthenticationError(detail="Token has no subject")

    try:
        return UUID(subject)
    except ValueError:
        raise AuthenticationError(detail="Invalid user id in token")


async def _load_active_user(db: AsyncSession, user_id: UUID) -> User:
    result = await db.execute(select(User).where(User.id == user_id))
    user = result.scalar_one_or_none()

    if user is None:
        raise AuthenticationError(detail="User not found")
    if not user.is_active():
        raise AuthenticationError(detail="User account is not active")
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    현재 요청의 사용자 조회

    Args:
        credentials: HTTP Bearer 토큰
        db: 데이터베이스 세션

    Returns:
        User: 활성 사용자

    Raises:
        AuthenticationError: 토큰이 없거나 유효하지 않은 경우, 사용자가 없거나 비활성인 경우

    Example:
        ```python
        @router.post("/redeem")
        async def redeem(current_user: User = Depends(get_current_user)):
            ...
        ```
    """
    if credentials is None:
        raise AuthenticationError(detail="Not authenticated")

    user_id = _extract_user_id(credentials.credentials)
    return await _load_active_user(db, user_id)


async def get_current_user_optional(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    db: AsyncSession = Depends(get_db),
) -> Optional[User]:
    """
    선택적 인증

    토큰이 없거나 유효하지 않으면 None을 반환합니다 (비로그인 쿠폰 검증 허용).
    """
    if credentials is None:
        return None

    try:
        user_id = _extract_user_id(credentials.credentials)
        return await _load_active_user(db, user_id)
    except AuthenticationError as e:
        logger.debug(f"선택적 인증 실패 (비로그인 처리): {e.detail}")
        return None
