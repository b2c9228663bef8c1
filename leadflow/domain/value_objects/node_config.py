"""节点配置值对象 - 按 (kind, subtype) 区分的封闭联合类型

业务定义：
- 条件节点的配置由 field_type（子类型标签）决定取值来源
- 动作节点的配置由 action_type（子类型标签）决定形状
- start / end 节点没有配置（None）

每种子类型对应一个不可变 dataclass，配置的整体替换和完整性检查都基于这个
封闭集合进行。
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar


class ConditionFieldType(str, Enum):
    """条件取值来源（条件节点的子类型）"""

    AMOCRM_FIELD = "amocrm_field"
    PIPELINE = "pipeline"
    STATUS = "status"
    BUCKET = "bucket"
    SCHEDULER = "scheduler"
    SCHEDULER_STEP = "scheduler_step"
    DIAL_ATTEMPTS = "dial_attempts"


class ConditionOperator(str, Enum):
    """条件比较运算符"""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"


class ActionType(str, Enum):
    """动作子类型"""

    UPDATE_LEAD = "update_lead"
    ADD_TO_BUCKET = "add_to_bucket"
    CHANGE_PRIORITY = "change_priority"
    CHANGE_SCHEDULER_STEP = "change_scheduler_step"
    REMOVE_FROM_DIALER = "remove_from_dialer"


@dataclass(frozen=True)
class ConditionConfig:
    """条件节点配置

    属性说明：
    - field_type: 取值来源
    - field: CRM 字段 ID（仅 amocrm_field 需要）
    - operator: 比较运算符
    - value: 比较值
    """

    field_type: ConditionFieldType = ConditionFieldType.AMOCRM_FIELD
    field: str = ""
    operator: ConditionOperator = ConditionOperator.EQUALS
    value: Any = ""

    subtype_key: ClassVar[str] = "field_type"

    @property
    def subtype(self) -> str:
        return self.field_type.value


@dataclass(frozen=True)
class UpdateLeadConfig:
    """更新线索：可选地切换漏斗/状态，并写入自定义字段"""

    pipeline_id: int | str | None = None
    status_id: int | str | None = None
    fields: dict[str, Any] = field(default_factory=dict)

    action_type: ClassVar[ActionType] = ActionType.UPDATE_LEAD
    subtype_key: ClassVar[str] = "action_type"

    @property
    def subtype(self) -> str:
        return self.action_type.value


@dataclass(frozen=True)
class AddToBucketConfig:
    """把线索放入外呼系统的 bucket"""

    bucket_id: str = ""
    priority: int = 50
    scheduler_id: str = ""
    scheduler_step: int = 1

    action_type: ClassVar[ActionType] = ActionType.ADD_TO_BUCKET
    subtype_key: ClassVar[str] = "action_type"

    @property
    def subtype(self) -> str:
        return self.action_type.value


@dataclass(frozen=True)
class ChangePriorityConfig:
    priority: int = 50

    action_type: ClassVar[ActionType] = ActionType.CHANGE_PRIORITY
    subtype_key: ClassVar[str] = "action_type"

    @property
    def subtype(self) -> str:
        return self.action_type.value


@dataclass(frozen=True)
class ChangeSchedulerStepConfig:
    scheduler_step: int = 1

    action_type: ClassVar[ActionType] = ActionType.CHANGE_SCHEDULER_STEP
    subtype_key: ClassVar[str] = "action_type"

    @property
    def subtype(self) -> str:
        return self.action_type.value


@dataclass(frozen=True)
class RemoveFromDialerConfig:
    action_type: ClassVar[ActionType] = ActionType.REMOVE_FROM_DIALER
    subtype_key: ClassVar[str] = "action_type"

    @property
    def subtype(self) -> str:
        return self.action_type.value


@dataclass(frozen=True)
class UnsupportedActionConfig:
    """当前客户端不认识的动作子类型

    只由反序列化产生：原样保留 actionData，重新序列化时原样写回。
    校验器总是把它报告为配置不完整，因此这样的流程无法被激活。
    """

    action_type_name: str
    raw: dict[str, Any] = field(default_factory=dict)

    subtype_key: ClassVar[str] = "action_type"

    @property
    def subtype(self) -> str:
        return self.action_type_name


ActionConfig = (
    UpdateLeadConfig
    | AddToBucketConfig
    | ChangePriorityConfig
    | ChangeSchedulerStepConfig
    | RemoveFromDialerConfig
    | UnsupportedActionConfig
)

NodeConfig = ConditionConfig | ActionConfig | None

ACTION_CONFIG_TYPES: dict[ActionType, type] = {
    ActionType.UPDATE_LEAD: UpdateLeadConfig,
    ActionType.ADD_TO_BUCKET: AddToBucketConfig,
    ActionType.CHANGE_PRIORITY: ChangePriorityConfig,
    ActionType.CHANGE_SCHEDULER_STEP: ChangeSchedulerStepConfig,
    ActionType.REMOVE_FROM_DIALER: RemoveFromDialerConfig,
}
