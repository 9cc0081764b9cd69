"""
보안 유틸리티 모듈

JWT 토큰 생성/검증을 제공합니다. 로그인과 토큰 발급은 인증 서비스가 담당하며,
이 서비스는 전달받은 Access Token을 검증합니다.
"""

from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt

from src.config import get_settings

settings = get_settings()

ACCESS_TOKEN_EXPIRE_MINUTES = 15


class JWTManager:
    """
    JWT 토큰 생성 및 검증 관리 클래스
    """

    @staticmethod
    def create_access_token(
        data: dict,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Access Token 생성 (테스트 및 운영 스크립트용)

        Args:
            data: 토큰에 포함할 데이터 (sub, role 등)
            expires_delta: 만료 시간 (기본값: 15분)

        Returns:
            str: JWT 토큰

        Example:
            >>> token = JWTManager.create_access_token({"sub": "user_id_123", "role": "admin"})
        """
        to_encode = data.copy()
        expire = datetime.now(timezone.utc) + (
            expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES)
        )
        to_encode.update({"exp": expire, "type": "access"})
        return jwt.encode(
            to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM
        )

    @staticmethod
    def decode_token(token: str) -> dict:
        """
        JWT 토큰 디코딩 및 검증

        Args:
            token: JWT 토큰

        Returns:
            dict: 디코딩된 페이로드

        Raises:
            ValueError: 토큰이 유효하지 않거나 만료된 경우
        """
        try:
            return jwt.decode(
                token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM]
            )
        except JWTError as e:
            raise ValueError(f"Invalid token: {str(e)}")

    @staticmethod
    def verify_token_type(payload: dict, expected_type: str) -> bool:
        """
        토큰 타입 검증 (access vs refresh)

        Args:
            payload: 디코딩된 토큰 페이로드
            expected_type: 기대하는 토큰 타입

        Returns:
            bool: 타입 일치 여부
        """
        return payload.get("type") == expected_type


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Access Token 생성 (JWTManager의 래퍼 함수)"""
    return JWTManager.create_access_token(data, expires_delta)
