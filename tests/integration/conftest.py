"""集成测试 fixtures：内存数据库 + FastAPI 应用"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from leadflow.infrastructure.database.base import Base
from leadflow.infrastructure.database.engine import get_db_session
from leadflow.interfaces.api.main import app


@pytest.fixture
def test_engine():
    """所有连接共享同一个内存数据库"""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def api_app(test_engine):
    """覆盖数据库依赖的应用（测试结束后恢复）"""
    TestSessionLocal = sessionmaker(
        bind=test_engine, autocommit=False, autoflush=False, expire_on_commit=False
    )

    def override_get_db():
        db = TestSessionLocal()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db_session] = override_get_db
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def client(api_app) -> TestClient:
    """不进入 lifespan，避免创建默认的 SQLite 文件"""
    return TestClient(api_app)
