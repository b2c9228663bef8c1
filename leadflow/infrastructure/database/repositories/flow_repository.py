"""SQLAlchemy Flow Repository 实现

职责：
1. 转换：领域实体 ⇄ ORM 模型（flow_data 使用传输格式编解码）
2. 持久化：保存、查询、删除
3. 异常转换：不存在 → NotFoundError；flow_data 损坏 → SerializationError
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from leadflow.domain.entities.flow import Flow
from leadflow.domain.exceptions import NotFoundError
from leadflow.infrastructure.database.models import IntegrationFlowModel
from leadflow.infrastructure.serialization.flow_wire import decode_graph, encode_graph

logger = logging.getLogger(__name__)


class SQLAlchemyFlowRepository:
    """实现 FlowRepository Port

    依赖：
    - Session: SQLAlchemy 同步会话，事务边界由调用者控制（session.commit()）
    """

    def __init__(self, session: Session):
        self.session = session

    # ==================== Assembler 方法 ====================

    def _to_entity(self, model: IntegrationFlowModel) -> Flow:
        return Flow(
            id=model.id,
            name=model.name,
            graph=decode_graph(model.flow_data or {}),
            is_active=model.is_active,
            created_at=model.created_at.replace(tzinfo=UTC),
            updated_at=model.updated_at.replace(tzinfo=UTC),
        )

    def _to_model(self, entity: Flow) -> IntegrationFlowModel:
        now = datetime.now(UTC)
        created_at = entity.created_at or now
        updated_at = entity.updated_at or now
        return IntegrationFlowModel(
            id=entity.id,
            name=entity.name,
            flow_data=encode_graph(entity.graph),
            is_active=entity.is_active,
            created_at=created_at.astimezone(UTC).replace(tzinfo=None),
            updated_at=updated_at.astimezone(UTC).replace(tzinfo=None),
        )

    # ==================== Repository 方法 ====================

    def save(self, flow: Flow) -> None:
        """保存 Flow（merge 自动判断新增或更新）"""
        self.session.merge(self._to_model(flow))

    def get_by_id(self, flow_id: str) -> Flow:
        model = self.session.get(IntegrationFlowModel, flow_id)
        if model is None:
            raise NotFoundError(entity_type="Flow", entity_id=flow_id)
        return self._to_entity(model)

    def find_by_id(self, flow_id: str) -> Flow | None:
        model = self.session.get(IntegrationFlowModel, flow_id)
        if model is None:
            return None
        return self._to_entity(model)

    def find_all(self) -> list[Flow]:
        """查找所有 Flow（按 created_at 倒序）"""
        stmt = select(IntegrationFlowModel).order_by(IntegrationFlowModel.created_at.desc())
        return [self._to_entity(model) for model in self.session.scalars(stmt).all()]

    def find_active(self) -> list[Flow]:
        stmt = (
            select(IntegrationFlowModel)
            .where(IntegrationFlowModel.is_active.is_(True))
            .order_by(IntegrationFlowModel.created_at.asc())
        )
        return [self._to_entity(model) for model in self.session.scalars(stmt).all()]

    def exists(self, flow_id: str) -> bool:
        stmt = select(IntegrationFlowModel.id).where(IntegrationFlowModel.id == flow_id)
        return self.session.scalar(stmt) is not None

    def delete(self, flow_id: str) -> None:
        """删除 Flow（幂等：多次删除不报错）"""
        model = self.session.get(IntegrationFlowModel, flow_id)
        if model is not None:
            self.session.delete(model)
            logger.debug(f"删除流程记录: {flow_id}")
