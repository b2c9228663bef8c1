"""数据库基础设施 - SQLAlchemy 配置和会话管理"""

from leadflow.infrastructure.database.base import Base
from leadflow.infrastructure.database.engine import SessionLocal, get_db_session, sync_engine
from leadflow.infrastructure.database.models import IntegrationFlowModel

__all__ = ["Base", "IntegrationFlowModel", "SessionLocal", "get_db_session", "sync_engine"]
