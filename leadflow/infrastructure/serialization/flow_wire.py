"""流程传输格式（Wire Format）

定义编辑端与后端之间交换的 JSON 结构：

    {id, name, flow_data: {nodes: [...], edges: [...]}, is_active, created_at, updated_at}

映射规则：
- 节点 type 即 kind；data 里保存 label 以及条件/动作配置
- 条件：data.conditionData = {fieldType, field, operator, value}
- 动作：data.actionType + data.actionData（snake_case 字段）
- 分支通过边的 sourceHandle（"true"/"false"）传递；
  解码时 sourceHandle 缺失则回退到边的 type 字段
- 未知节点类型 → SerializationError；未知动作类型 → UnsupportedActionConfig（原样保留）

后端（FastAPI）和编辑端（HTTP 适配器）共用这些模型。
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from leadflow.domain.entities.edge import Edge
from leadflow.domain.entities.flow import Flow, FlowSummary
from leadflow.domain.entities.flow_graph import FlowGraph
from leadflow.domain.entities.node import Node
from leadflow.domain.exceptions import SerializationError
from leadflow.domain.services import config_schema_registry as registry
from leadflow.domain.value_objects.node_config import (
    ACTION_CONFIG_TYPES,
    ActionType,
    ConditionConfig,
    ConditionFieldType,
    ConditionOperator,
    NodeConfig,
    UnsupportedActionConfig,
    UpdateLeadConfig,
)
from leadflow.domain.value_objects.node_kind import Branch, NodeKind
from leadflow.domain.value_objects.position import Position

logger = logging.getLogger(__name__)

BRANCH_VALUES = {branch.value for branch in Branch}


class PositionPayload(BaseModel):
    """画布坐标（允许负数）"""

    x: float = 0.0
    y: float = 0.0


class NodePayload(BaseModel):
    """节点

    字段：
    - id: 节点 ID
    - type: 节点类型（start/condition/action/end）
    - data: label + 配置
    - position: 画布位置
    """

    id: str
    type: str
    data: dict[str, Any] = Field(default_factory=dict)
    position: PositionPayload = Field(default_factory=PositionPayload)

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_entity(cls, node: Node) -> NodePayload:
        data: dict[str, Any] = {"label": node.label}
        data.update(encode_config(node.config))
        return cls(
            id=node.id,
            type=node.kind.value,
            data=data,
            position=PositionPayload(x=node.position.x, y=node.position.y),
        )

    def to_entity(self) -> Node:
        try:
            kind = NodeKind(self.type)
        except ValueError:
            raise SerializationError(f"未知的节点类型: {self.type} (node={self.id})") from None
        label = self.data.get("label") or ""
        return Node(
            id=self.id,
            kind=kind,
            config=decode_config(kind, self.data, node_id=self.id),
            position=Position(x=self.position.x, y=self.position.y),
            label=str(label),
        )


class EdgePayload(BaseModel):
    """边

    字段：
    - id: 边 ID
    - source / target: 端点节点 ID
    - sourceHandle: 条件分支（"true"/"false"）
    - type / animated: 渲染提示，只在解码时读取 type 作为分支回退
    """

    id: str
    source: str
    target: str
    sourceHandle: str | None = None
    type: str | None = None
    animated: bool | None = None

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_entity(cls, edge: Edge) -> EdgePayload:
        return cls(
            id=edge.id,
            source=edge.source_node_id,
            target=edge.target_node_id,
            sourceHandle=edge.branch.value if edge.branch else None,
        )

    def to_entity(self) -> Edge:
        branch: Branch | None = None
        if self.sourceHandle in BRANCH_VALUES:
            branch = Branch(self.sourceHandle)
        elif self.type in BRANCH_VALUES:
            branch = Branch(self.type)
        return Edge(
            id=self.id,
            source_node_id=self.source,
            target_node_id=self.target,
            branch=branch,
        )


class FlowDataPayload(BaseModel):
    """flow_data：节点与边的完整列表"""

    nodes: list[NodePayload] = Field(default_factory=list)
    edges: list[EdgePayload] = Field(default_factory=list)

    @classmethod
    def from_graph(cls, graph: FlowGraph) -> FlowDataPayload:
        return cls(
            nodes=[NodePayload.from_entity(node) for node in graph.nodes.values()],
            edges=[EdgePayload.from_entity(edge) for edge in graph.edges.values()],
        )

    def to_graph(self) -> FlowGraph:
        """转换为 FlowGraph

        悬空边会被保留（由校验器报告 DanglingEdge），重复 ID 视为格式错误。
        """
        node_ids = [node.id for node in self.nodes]
        edge_ids = [edge.id for edge in self.edges]
        if len(set(node_ids)) != len(node_ids):
            raise SerializationError("flow_data 包含重复的节点 ID")
        if len(set(edge_ids)) != len(edge_ids):
            raise SerializationError("flow_data 包含重复的边 ID")
        return FlowGraph.from_parts(
            nodes=[node.to_entity() for node in self.nodes],
            edges=[edge.to_entity() for edge in self.edges],
        )


class FlowPayload(BaseModel):
    """完整流程"""

    id: str = ""
    name: str
    flow_data: FlowDataPayload = Field(default_factory=FlowDataPayload)
    is_active: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_entity(cls, flow: Flow) -> FlowPayload:
        return cls(
            id=flow.id,
            name=flow.name,
            flow_data=FlowDataPayload.from_graph(flow.graph),
            is_active=flow.is_active,
            created_at=flow.created_at,
            updated_at=flow.updated_at,
        )

    def to_entity(self) -> Flow:
        return Flow(
            id=self.id,
            name=self.name,
            graph=self.flow_data.to_graph(),
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class FlowSummaryPayload(BaseModel):
    """流程列表项（列表接口同样可能返回 flow_data，这里忽略）"""

    id: str
    name: str
    is_active: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    model_config = ConfigDict(extra="ignore")

    @classmethod
    def from_entity(cls, flow: Flow) -> FlowSummaryPayload:
        return cls(
            id=flow.id,
            name=flow.name,
            is_active=flow.is_active,
            created_at=flow.created_at,
            updated_at=flow.updated_at,
        )

    def to_entity(self) -> FlowSummary:
        return FlowSummary(
            id=self.id,
            name=self.name,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


# ==================== 配置编解码 ====================


def encode_config(config: NodeConfig) -> dict[str, Any]:
    """把节点配置编码为 data 中的键（不含 label）"""
    if config is None:
        return {}
    if isinstance(config, ConditionConfig):
        return {
            "conditionData": {
                "fieldType": config.field_type.value,
                "field": config.field,
                "operator": config.operator.value,
                "value": config.value,
            }
        }
    if isinstance(config, UnsupportedActionConfig):
        return {"actionType": config.action_type_name, "actionData": dict(config.raw)}

    action_data: dict[str, Any] = {}
    for name in sorted(registry.field_names(config)):
        value = getattr(config, name)
        if isinstance(value, dict):
            value = dict(value)
        action_data[name] = value
    if isinstance(config, UpdateLeadConfig):
        # 前端用空字符串表示“不修改”
        for key in ("pipeline_id", "status_id"):
            if action_data[key] is None:
                action_data[key] = ""
    return {"actionType": config.subtype, "actionData": action_data}


def decode_config(kind: NodeKind, data: dict[str, Any], node_id: str = "") -> NodeConfig:
    """从节点 data 解码配置"""
    if kind in (NodeKind.START, NodeKind.END):
        return None
    if kind == NodeKind.CONDITION:
        return _decode_condition(data.get("conditionData") or {}, node_id)
    return _decode_action(data.get("actionType"), data.get("actionData") or {}, node_id)


def _decode_condition(raw: Any, node_id: str) -> ConditionConfig:
    if not isinstance(raw, dict):
        raise SerializationError(f"conditionData 必须是对象 (node={node_id})")
    defaults = ConditionConfig()
    try:
        field_type = ConditionFieldType(raw.get("fieldType") or defaults.field_type)
        operator = ConditionOperator(raw.get("operator") or defaults.operator)
    except ValueError as exc:
        raise SerializationError(f"无法解析条件配置: {exc} (node={node_id})") from None
    return ConditionConfig(
        field_type=field_type,
        field=str(raw.get("field") or ""),
        operator=operator,
        value=raw.get("value", defaults.value),
    )


def _decode_action(action_type: Any, raw: Any, node_id: str) -> NodeConfig:
    if not isinstance(raw, dict):
        raise SerializationError(f"actionData 必须是对象 (node={node_id})")
    try:
        known = ActionType(action_type)
    except ValueError:
        logger.warning(f"未知的动作类型，原样保留: {action_type!r} (node={node_id})")
        return UnsupportedActionConfig(action_type_name=str(action_type or ""), raw=dict(raw))

    config_type = ACTION_CONFIG_TYPES[known]
    allowed = registry.field_names(config_type())
    kwargs: dict[str, Any] = {}
    for key, value in raw.items():
        if key not in allowed:
            logger.debug(f"忽略未知的 actionData 字段: {key} (node={node_id})")
            continue
        kwargs[key] = _normalize_action_value(key, value)
    try:
        return config_type(**kwargs)
    except TypeError as exc:
        raise SerializationError(f"无法解析动作配置: {exc} (node={node_id})") from exc


def _normalize_action_value(key: str, value: Any) -> Any:
    if key in ("pipeline_id", "status_id") and value == "":
        return None
    if key in ("priority", "scheduler_step") and isinstance(value, float) and value.is_integer():
        return int(value)
    if key == "fields" and isinstance(value, dict):
        return dict(value)
    return value


# ==================== 便捷函数 ====================


def encode_flow(flow: Flow) -> dict[str, Any]:
    return FlowPayload.from_entity(flow).model_dump(mode="json", exclude_none=True)


def decode_flow(payload: Any) -> Flow:
    """解析后端返回的流程 JSON

    抛出：
        SerializationError: 结构不符合传输格式
    """
    try:
        model = FlowPayload.model_validate(payload)
    except ValidationError as exc:
        raise SerializationError(f"无法解析流程: {exc.error_count()} 个字段错误") from exc
    return model.to_entity()


def encode_graph(graph: FlowGraph) -> dict[str, Any]:
    return FlowDataPayload.from_graph(graph).model_dump(mode="json", exclude_none=True)


def decode_graph(payload: Any) -> FlowGraph:
    try:
        model = FlowDataPayload.model_validate(payload)
    except ValidationError as exc:
        raise SerializationError(f"无法解析 flow_data: {exc.error_count()} 个字段错误") from exc
    return model.to_graph()


def decode_summaries(payload: Any) -> list[FlowSummary]:
    if not isinstance(payload, list):
        raise SerializationError("流程列表必须是数组")
    try:
        return [FlowSummaryPayload.model_validate(item).to_entity() for item in payload]
    except ValidationError as exc:
        raise SerializationError(f"无法解析流程列表: {exc.error_count()} 个字段错误") from exc


__all__ = [
    "EdgePayload",
    "FlowDataPayload",
    "FlowPayload",
    "FlowSummaryPayload",
    "NodePayload",
    "PositionPayload",
    "decode_config",
    "decode_flow",
    "decode_graph",
    "decode_summaries",
    "encode_config",
    "encode_flow",
    "encode_graph",
]
