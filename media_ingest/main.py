"""
FastAPI 主应用
"""
from contextlib import asynccontextmanager
from time import perf_counter

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from media_ingest import __version__
from media_ingest.core.config import settings, validate_settings
from media_ingest.core.logging import log_context, logger, new_request_id, setup_logging
from media_ingest.errors import (
    ConversionError,
    MediaPipelineError,
    StorageError,
    TranscodeTimeoutError,
    UnsupportedRouteError,
    ValidationError,
)
from media_ingest.routers import media, naming, system

setup_logging(level=settings.log_level, fmt=settings.log_format, debug=settings.debug, log_dir=settings.log_dir)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    validate_settings()
    logger.info(
        "启动 media-ingest 应用程序 (storage_backend={}, mock_storage={})",
        settings.storage_backend,
        settings.storage_mock_mode,
    )
    yield
    logger.info("应用程序关闭完成")


app = FastAPI(
    title="media-ingest API",
    description="媒体上传、衍生资产生成与分发 URL 解析",
    version=__version__,
    lifespan=lifespan,
)

# 错误分类 -> HTTP 状态码（按继承顺序匹配，子类在前）
_ERROR_STATUS = (
    (ValidationError, 400),
    (UnsupportedRouteError, 422),
    (ConversionError, 422),
    (TranscodeTimeoutError, 504),
    (StorageError, 502),
)


def status_for_error(exc: MediaPipelineError) -> int:
    for error_cls, status_code in _ERROR_STATUS:
        if isinstance(exc, error_cls):
            return status_code
    return 500


@app.exception_handler(MediaPipelineError)
async def media_pipeline_error_handler(request: Request, exc: MediaPipelineError):
    status_code = status_for_error(exc)
    if status_code >= 500:
        logger.error("Request failed: {}: {}", type(exc).__name__, exc.message)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "error": type(exc).__name__},
    )


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = request.headers.get("X-Request-Id") or new_request_id()
    request.state.request_id = request_id

    start = perf_counter()
    response = None
    with log_context(request_id=request_id):
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("未处理的请求异常")
            raise
        finally:
            elapsed_ms = (perf_counter() - start) * 1000
            logger.info(
                "request_complete path={} method={} status={} elapsed_ms={:.2f}",
                request.url.path,
                request.method,
                getattr(response, "status_code", 500),
                elapsed_ms,
            )

    response.headers["X-Request-Id"] = request_id
    return response


# CORS中间件
_cors_origins = [o.strip() for o in settings.cors_allowed_origins.split(",") if o.strip()]
app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=("*" not in _cors_origins),
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(media.router, prefix="/api/v1", tags=["media"])
app.include_router(naming.router, prefix="/api/v1", tags=["naming"])
app.include_router(system.router, prefix="/api/v1", tags=["system"])
