"""ConfigSchemaRegistry - 节点配置的形状与默认值

业务定义：
- 按 (kind, subtype) 声明配置类型和默认值
- 子类型变化时，GraphStore 用这里的默认值整体替换配置，
  上一个子类型的字段不会残留到执行阶段

纯查表，无副作用。
"""

from dataclasses import fields
from typing import Any

from leadflow.domain.exceptions import InvalidConfigError
from leadflow.domain.value_objects.node_config import (
    ACTION_CONFIG_TYPES,
    ActionType,
    ConditionConfig,
    ConditionFieldType,
    NodeConfig,
    UnsupportedActionConfig,
)
from leadflow.domain.value_objects.node_kind import NodeKind

DEFAULT_ACTION_TYPE = ActionType.UPDATE_LEAD
DEFAULT_CONDITION_FIELD_TYPE = ConditionFieldType.AMOCRM_FIELD


def defaults_for(kind: NodeKind, subtype: str | None = None) -> NodeConfig:
    """返回 (kind, subtype) 的默认配置（每次返回新对象）

    参数：
        kind: 节点类型
        subtype: 条件节点为 field_type，动作节点为 action_type；None 表示默认子类型

    抛出：
        InvalidConfigError: 子类型不属于该节点类型，或 start/end 传入了子类型
    """
    if kind in (NodeKind.START, NodeKind.END):
        if subtype is not None:
            raise InvalidConfigError(f"{kind.value} 节点没有子类型: {subtype}")
        return None

    if kind == NodeKind.CONDITION:
        field_type = _parse_enum(ConditionFieldType, subtype, DEFAULT_CONDITION_FIELD_TYPE)
        return ConditionConfig(field_type=field_type)

    action_type = _parse_enum(ActionType, subtype, DEFAULT_ACTION_TYPE)
    return ACTION_CONFIG_TYPES[action_type]()


def subtype_of(config: NodeConfig) -> str | None:
    """返回配置的子类型标签（start/end 为 None）"""
    if config is None:
        return None
    return config.subtype


def field_names(config: NodeConfig) -> set[str]:
    """配置可编辑的字段名（不含子类型标签本身）"""
    if config is None or isinstance(config, UnsupportedActionConfig):
        return set()
    return {f.name for f in fields(config)} - {config.subtype_key}


def expected_kind(config: NodeConfig) -> NodeKind | None:
    """配置对象对应的节点类型；None 对应 start/end"""
    if config is None:
        return None
    if isinstance(config, ConditionConfig):
        return NodeKind.CONDITION
    return NodeKind.ACTION


def _parse_enum(enum_type: Any, value: Any, default: Any) -> Any:
    if value is None:
        return default
    try:
        return enum_type(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise InvalidConfigError(f"不支持的子类型: {value}. 支持的类型: {allowed}") from None


__all__ = [
    "DEFAULT_ACTION_TYPE",
    "DEFAULT_CONDITION_FIELD_TYPE",
    "defaults_for",
    "expected_kind",
    "field_names",
    "subtype_of",
]
