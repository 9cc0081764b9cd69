"""
UpWear 쿠폰 서비스 FastAPI 메인 애플리케이션

쿠폰 관리(관리자)와 쿠폰 검증/사용(고객) API 서버입니다.
"""

from contextlib import asynccontextmanager
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession
import uvicorn

from src.config import get_settings
from src.models.base import close_db, get_db
from src.middleware.prometheus import PrometheusMiddleware
from src.utils.logging import setup_logging, get_logger
from src.utils.exceptions import AppException
from src.utils.prometheus_metrics import record_error
from src.utils.sentry_config import init_sentry

# API 라우터
from src.api.coupons import router as coupons_router
from src.api.metrics import router as metrics_router

# Admin API 라우터
from src.api.admin.coupons import router as admin_coupons_router

settings = get_settings()

# 로깅 설정
setup_logging(settings.LOG_LEVEL, settings.LOG_FORMAT, settings.LOG_FILE)
logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    애플리케이션 라이프사이클 관리

    시작 시: Sentry 초기화
    종료 시: 데이터베이스 연결 정리
    """
    logger.info("UpWear 쿠폰 서비스 시작 중...")
    init_sentry(
        settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT or settings.ENV,
        release=settings.APP_VERSION,
    )
    logger.info("서버 시작 완료")
    yield

    logger.info("UpWear 쿠폰 서비스 종료 중...")
    await close_db()
    logger.info("서버 종료 완료")


# FastAPI 애플리케이션 인스턴스
app = FastAPI(
    title="UpWear - 쿠폰 서비스 API",
    description="""
## UpWear 쿠폰 서비스

스토어프론트 결제 단계와 관리자 화면에서 사용하는 쿠폰 백엔드입니다.

### 주요 기능

- **쿠폰 관리 (관리자)**: 생성, 수정, 삭제, 코드 중복 확인, 코드 자동 생성
- **쿠폰 검증**: 유효 기간, 최소 주문 금액, 사용 한도, 첫 구매 조건, 적용/제외 상품 검사
- **쿠폰 사용**: 사용 한도를 넘지 않는 원자적 사용 처리와 사용 이력 기록
- **통계**: 쿠폰별 사용 횟수, 총 할인 금액, 매출, 정합성 점검

### 기술 스택

- **Backend**: Python 3.11+, FastAPI
- **Database**: PostgreSQL 15+
- **Monitoring**: Prometheus, Sentry
    """,
    version=settings.APP_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# CORS 미들웨어 설정 (스토어프론트/관리자 화면 연동)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.get_cors_origins(),
    allow_credentials=settings.CORS_ALLOW_CREDENTIALS,
    allow_methods=["*"],
    allow_headers=["*"],
)

if settings.PROMETHEUS_ENABLED:
    app.add_middleware(PrometheusMiddleware)


# 전역 예외 핸들러
@app.exception_handler(AppException)
async def app_exception_handler(request: Request, exc: AppException):
    """애플리케이션 정의 예외 처리"""
    logger.warning(
        f"AppException: {exc.message}",
        extra={
            "error_code": exc.error_code,
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.error_code,
            "message": exc.message,
            "details": exc.details,
        },
    )


@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """모든 예외를 캐치하는 최종 핸들러"""
    logger.error(
        f"Unhandled exception: {str(exc)}",
        exc_info=True,
        extra={
            "path": request.url.path,
            "method": request.method,
        },
    )
    record_error(type(exc).__name__, severity="critical")
    return JSONResponse(
        status_code=500,
        content={
            "error": "internal_server_error",
            "message": "An internal server error occurred. Please try again later.",
        },
    )


# 헬스 체크 엔드포인트
@app.get("/", tags=["Health"])
async def root():
    """루트 엔드포인트"""
    return {
        "service": settings.APP_NAME,
        "status": "running",
        "version": settings.APP_VERSION,
    }


@app.get("/health", tags=["Health"])
async def health_check(db: AsyncSession = Depends(get_db)):
    """헬스 체크 엔드포인트 (로드 밸런서용)"""
    try:
        await db.execute(text("SELECT 1"))
        database = "connected"
    except Exception as e:
        logger.error(f"헬스 체크 DB 연결 실패: {e}")
        await db.rollback()
        database = "disconnected"

    healthy = database == "connected"
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={
            "status": "healthy" if healthy else "unhealthy",
            "database": database,
        },
    )


# API 라우터 등록
app.include_router(coupons_router)
app.include_router(metrics_router)

# Admin 라우터 등록
app.include_router(admin_coupons_router)


if __name__ == "__main__":
    # 개발 서버 실행
    uvicorn.run(
        "src.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=settings.is_development,
        log_level="info",
    )
