"""SQLAlchemy Repository 实现"""

from leadflow.infrastructure.database.repositories.flow_repository import SQLAlchemyFlowRepository

__all__ = ["SQLAlchemyFlowRepository"]
