"""ProcessLeadEventUseCase - 线索事件驱动所有已启用的流程"""

import logging
from typing import Any

from leadflow.domain.ports.action_dispatcher import ActionDispatcher
from leadflow.domain.ports.flow_repository import FlowRepository
from leadflow.domain.services.flow_engine import FlowEngine, FlowRunResult

logger = logging.getLogger(__name__)


class ProcessLeadEventUseCase:
    """加载已启用的流程，逐个执行；单个流程失败不影响其他流程"""

    def __init__(
        self,
        flow_repository: FlowRepository,
        dispatcher: ActionDispatcher,
        max_steps: int,
    ):
        self.flow_repository = flow_repository
        self.engine = FlowEngine(dispatcher, max_steps=max_steps)

    async def execute(self, lead: dict[str, Any]) -> dict[str, FlowRunResult]:
        flows = self.flow_repository.find_active()
        logger.info(f"处理线索事件: lead_id={lead.get('lead_id')}, active_flows={len(flows)}")
        return await self.engine.process_event(flows, lead)
