"""Domain Services 模块

领域服务：
- EventBus: 流程图变更通知
- GraphValidator (graph_validator): 结构校验
- GraphStore (graph_store): 流程图的编辑操作，需从模块直接导入（依赖 events 包）
- FlowEngine: 对线索执行流程
"""

from leadflow.domain.services.event_bus import Event, EventBus, EventHandler
from leadflow.domain.services.flow_engine import FlowEngine, FlowRunResult
from leadflow.domain.services.graph_validator import (
    Violation,
    ViolationKind,
    validate,
    validate_or_raise,
)

__all__ = [
    "Event",
    "EventBus",
    "EventHandler",
    "FlowEngine",
    "FlowRunResult",
    "Violation",
    "ViolationKind",
    "validate",
    "validate_or_raise",
]
