"""数据库引擎配置

设计说明：
- 使用 create_engine 创建同步引擎（Repository 是同步的）
- 从配置文件读取 database_url
- SQLite 需要 check_same_thread=False（FastAPI 在线程池中执行同步路由）
- 其他数据库配置连接池参数
"""

from collections.abc import Generator

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from leadflow.config import settings


def get_sync_engine(database_url: str | None = None) -> Engine:
    """创建同步数据库引擎

    参数：
        database_url: 数据库 URL（默认 Settings.database_url）

    返回：
        Engine: 同步数据库引擎
    """
    url = database_url or settings.database_url
    if url.startswith("sqlite"):
        return create_engine(
            url,
            echo=settings.debug,
            connect_args={"check_same_thread": False},
        )
    return create_engine(
        url,
        echo=settings.debug,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
    )


# 全局同步引擎实例
sync_engine = get_sync_engine()

# 创建 Session 工厂
SessionLocal = sessionmaker(
    bind=sync_engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


def get_db_session() -> Generator[Session, None, None]:
    """获取数据库会话（FastAPI 依赖）

    为每个请求创建新的 Session，请求结束后关闭。

    Yields:
        Session: 数据库会话
    """
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
