"""DryRunFlowUseCase - 用给定线索试运行流程

接口层注入 RecordingActionDispatcher，只收集动作命令，不触达 CRM / 外呼系统。
不要求流程已启用。
"""

from typing import Any

from leadflow.domain.ports.action_dispatcher import ActionDispatcher
from leadflow.domain.ports.flow_repository import FlowRepository
from leadflow.domain.services.flow_engine import FlowEngine, FlowRunResult


class DryRunFlowUseCase:
    def __init__(
        self,
        flow_repository: FlowRepository,
        dispatcher: ActionDispatcher,
        max_steps: int,
    ):
        self.flow_repository = flow_repository
        self.engine = FlowEngine(dispatcher, max_steps=max_steps)

    async def execute(self, flow_id: str, lead: dict[str, Any]) -> FlowRunResult:
        """抛出 NotFoundError / FlowExecutionError"""
        flow = self.flow_repository.get_by_id(flow_id)
        return await self.engine.execute(flow.graph, lead)
