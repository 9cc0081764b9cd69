"""
Database Compatibility Utilities

SQLite/PostgreSQL compatibility for JSON types
"""

from sqlalchemy import JSON
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB


# PostgreSQL에서는 JSONB, 테스트용 SQLite에서는 일반 JSON으로 저장
JSONB = JSON().with_variant(PG_JSONB(), "postgresql")
