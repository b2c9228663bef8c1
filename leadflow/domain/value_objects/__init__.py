"""Domain 值对象

导出所有领域值对象，方便其他模块导入
"""

from leadflow.domain.value_objects.node_config import (
    ActionType,
    AddToBucketConfig,
    ChangePriorityConfig,
    ChangeSchedulerStepConfig,
    ConditionConfig,
    ConditionFieldType,
    ConditionOperator,
    NodeConfig,
    RemoveFromDialerConfig,
    UnsupportedActionConfig,
    UpdateLeadConfig,
)
from leadflow.domain.value_objects.node_kind import Branch, NodeKind
from leadflow.domain.value_objects.position import Position

__all__ = [
    "ActionType",
    "AddToBucketConfig",
    "Branch",
    "ChangePriorityConfig",
    "ChangeSchedulerStepConfig",
    "ConditionConfig",
    "ConditionFieldType",
    "ConditionOperator",
    "NodeConfig",
    "NodeKind",
    "Position",
    "RemoveFromDialerConfig",
    "UnsupportedActionConfig",
    "UpdateLeadConfig",
]
