"""SaveFlowUseCase - 后端创建/更新流程

业务流程：
1. 名称不能为空
2. is_active=True 时强校验：存在任何结构违规都拒绝（StructuralError）
3. 草稿保存时校验只作提示（记录日志）
4. 创建时分配 ID 和创建时间；更新时保留原创建时间
5. 整体替换流程图并保存（事务由调用者提交）
"""

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from uuid import uuid4

from leadflow.domain.entities.flow import Flow
from leadflow.domain.entities.flow_graph import FlowGraph
from leadflow.domain.exceptions import DomainError
from leadflow.domain.ports.flow_repository import FlowRepository
from leadflow.domain.services.graph_validator import validate, validate_or_raise

logger = logging.getLogger(__name__)


@dataclass
class SaveFlowInput:
    """保存流程的输入参数

    属性说明：
    - flow_id: 为 None 时创建新流程
    - name: 流程名称
    - graph: 完整流程图
    - is_active: 是否启用
    """

    name: str
    graph: FlowGraph
    is_active: bool = False
    flow_id: str | None = None


class SaveFlowUseCase:
    """创建或整体更新流程

    依赖：
    - FlowRepository: 流程仓储接口（通过构造函数注入）
    """

    def __init__(self, flow_repository: FlowRepository):
        self.flow_repository = flow_repository

    def execute(self, input_data: SaveFlowInput) -> Flow:
        """执行用例

        抛出：
            DomainError: 名称为空
            NotFoundError: 更新的流程不存在
            StructuralError: 启用的流程存在结构违规
        """
        name = input_data.name.strip() if input_data.name else ""
        if not name:
            raise DomainError("name 不能为空")

        if input_data.is_active:
            validate_or_raise(input_data.graph)
        else:
            violations = validate(input_data.graph)
            if violations:
                logger.info(f"草稿保存，流程图存在 {len(violations)} 个结构问题: name={name}")

        now = datetime.now(UTC)
        if input_data.flow_id is None:
            flow = Flow(
                id=str(uuid4()),
                name=name,
                graph=input_data.graph,
                is_active=input_data.is_active,
                created_at=now,
                updated_at=now,
            )
            logger.info(f"创建流程: flow_id={flow.id}, name={name}")
        else:
            existing = self.flow_repository.get_by_id(input_data.flow_id)
            flow = Flow(
                id=existing.id,
                name=name,
                graph=input_data.graph,
                is_active=input_data.is_active,
                created_at=existing.created_at or now,
                updated_at=now,
            )
            logger.info(f"更新流程: flow_id={flow.id}, is_active={flow.is_active}")

        self.flow_repository.save(flow)
        return flow
