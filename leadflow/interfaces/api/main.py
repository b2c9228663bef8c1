"""FastAPI 应用入口"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from leadflow.config import settings
from leadflow.infrastructure.database.base import Base
from leadflow.infrastructure.database.engine import sync_engine
from leadflow.interfaces.api.routes import flows

logger = logging.getLogger(__name__)


def _get_display_host() -> str:
    if settings.host in {"0.0.0.0", "::"}:
        return "127.0.0.1"
    return settings.host


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )
    display_host = _get_display_host()
    logger.info(f"{settings.app_name} v{settings.app_version} 启动中...")
    logger.info(f"环境: {settings.env}, 数据库: {settings.database_url}")
    logger.info(f"API 文档: http://{display_host}:{settings.port}/docs")

    Base.metadata.create_all(bind=sync_engine)

    try:
        yield
    finally:
        logger.info(f"{settings.app_name} 关闭中...")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description="CRM / 外呼自动化流程服务",
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """请求体格式错误统一返回 400"""
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": jsonable_encoder(exc.errors())},
    )


@app.get("/health", tags=["Health"])
async def health_check() -> JSONResponse:
    return JSONResponse(
        content={
            "status": "healthy",
            "app_name": settings.app_name,
            "version": settings.app_version,
            "env": settings.env,
        }
    )


app.include_router(flows.router, prefix="/api/v1", tags=["Flows"])


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "leadflow.interfaces.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
