"""FlowEngine - 对线索执行已启用的流程

业务场景：
- CRM 推送线索事件后，对每个已启用的流程运行一次
- 条件节点读取线索属性决定走 true 还是 false 分支
- 动作节点生成 ActionCommand，交给 ActionDispatcher 投递

执行语义：
- 从 start 出发沿边前进，到达 end 即完成
- 条件节点找不到对应分支的出边时停止（completed=False）
- start / 动作节点没有出边时视为完成
- 访问节点数超过 max_steps（例如图中存在环）时抛出 FlowExecutionError
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any

from leadflow.domain.entities.flow import Flow
from leadflow.domain.entities.flow_graph import FlowGraph
from leadflow.domain.entities.node import Node
from leadflow.domain.exceptions import FlowExecutionError
from leadflow.domain.ports.action_dispatcher import ActionCommand, ActionDispatcher
from leadflow.domain.value_objects.node_config import (
    AddToBucketConfig,
    ChangePriorityConfig,
    ChangeSchedulerStepConfig,
    ConditionConfig,
    ConditionFieldType,
    ConditionOperator,
    RemoveFromDialerConfig,
    UpdateLeadConfig,
)
from leadflow.domain.value_objects.node_kind import Branch, NodeKind

logger = logging.getLogger(__name__)

DEFAULT_MAX_STEPS = 1000

# field_type → 线索载荷中的键（amocrm_field 使用条件里的 field）
FIELD_TYPE_KEYS: dict[ConditionFieldType, str] = {
    ConditionFieldType.PIPELINE: "pipeline_id",
    ConditionFieldType.STATUS: "status_id",
    ConditionFieldType.BUCKET: "bucket_id",
    ConditionFieldType.SCHEDULER: "scheduler_id",
    ConditionFieldType.SCHEDULER_STEP: "scheduler_step",
    ConditionFieldType.DIAL_ATTEMPTS: "dial_attempts",
}


@dataclass
class FlowRunResult:
    """一次执行的结果

    属性说明：
    - completed: 是否正常走到终点
    - visited_node_ids: 按顺序访问过的节点
    - commands: 已投递的动作命令
    - stopped_at: 未完成时停下的节点
    """

    completed: bool = False
    visited_node_ids: list[str] = field(default_factory=list)
    commands: list[ActionCommand] = field(default_factory=list)
    stopped_at: str | None = None


class FlowEngine:
    """流程执行引擎"""

    def __init__(self, dispatcher: ActionDispatcher, max_steps: int = DEFAULT_MAX_STEPS):
        self.dispatcher = dispatcher
        self.max_steps = max_steps

    async def execute(self, graph: FlowGraph, lead: Mapping[str, Any]) -> FlowRunResult:
        starts = graph.nodes_of_kind(NodeKind.START)
        if not starts:
            raise FlowExecutionError("流程没有开始节点")

        result = FlowRunResult()
        node: Node | None = starts[0]
        while node is not None:
            if len(result.visited_node_ids) >= self.max_steps:
                raise FlowExecutionError(
                    f"流程执行超过 {self.max_steps} 步，最后节点: {node.id}"
                )
            result.visited_node_ids.append(node.id)

            if node.kind == NodeKind.END:
                result.completed = True
                return result

            if node.kind == NodeKind.CONDITION:
                matched = evaluate_condition(node.config, lead)
                branch = Branch.TRUE if matched else Branch.FALSE
                edge = next(
                    (e for e in graph.outgoing(node.id) if e.branch == branch),
                    None,
                )
                if edge is None:
                    logger.info(f"条件节点 {node.id} 没有 {branch.value} 分支，停止执行")
                    result.stopped_at = node.id
                    return result
                node = self._target(graph, edge.target_node_id)
                continue

            if node.kind == NodeKind.ACTION:
                command = build_command(node, lead)
                try:
                    await self.dispatcher.dispatch(command)
                except Exception as exc:
                    raise FlowExecutionError(
                        f"动作派发失败: {command.action_type.value} (node={node.id}): {exc}"
                    ) from exc
                result.commands.append(command)

            out_edges = graph.outgoing(node.id)
            if not out_edges:
                result.completed = True
                return result
            node = self._target(graph, out_edges[0].target_node_id)

        return result

    async def process_event(
        self, flows: Iterable[Flow], lead: Mapping[str, Any]
    ) -> dict[str, FlowRunResult]:
        """用一个线索事件驱动所有已启用的流程

        单个流程失败只记录日志，不影响其他流程。
        """
        results: dict[str, FlowRunResult] = {}
        for flow in flows:
            if not flow.is_active:
                continue
            logger.info(f"处理线索事件: flow_id={flow.id}, name={flow.name}")
            try:
                results[flow.id] = await self.execute(flow.graph, lead)
            except FlowExecutionError as exc:
                logger.error(f"流程执行失败: flow_id={flow.id}, error={exc}")
        return results

    @staticmethod
    def _target(graph: FlowGraph, node_id: str) -> Node:
        node = graph.nodes.get(node_id)
        if node is None:
            raise FlowExecutionError(f"节点不存在: {node_id}")
        return node


def evaluate_condition(config: Any, lead: Mapping[str, Any]) -> bool:
    """对线索载荷求值条件；属性缺失或无法比较时为 False"""
    if not isinstance(config, ConditionConfig):
        return False

    key = FIELD_TYPE_KEYS.get(config.field_type, config.field)
    if key not in lead:
        return False
    actual = lead[key]
    expected = config.value

    if config.operator == ConditionOperator.EQUALS:
        return _stringify(actual) == _stringify(expected)
    if config.operator == ConditionOperator.NOT_EQUALS:
        return _stringify(actual) != _stringify(expected)
    if config.operator == ConditionOperator.CONTAINS:
        return _stringify(expected).lower() in _stringify(actual).lower()

    left, right = _to_float(actual), _to_float(expected)
    if left is None or right is None:
        return False
    if config.operator == ConditionOperator.GREATER_THAN:
        return left > right
    return left < right


def build_command(node: Node, lead: Mapping[str, Any]) -> ActionCommand:
    """把动作节点配置和线索载荷组装成 ActionCommand"""
    config = node.config
    lead_id = lead.get("lead_id")

    if isinstance(config, UpdateLeadConfig):
        payload: dict[str, Any] = {"lead_id": lead_id}
        if config.fields:
            payload["fields"] = dict(config.fields)
        if config.status_id not in (None, ""):
            payload["status_id"] = config.status_id
        if config.pipeline_id not in (None, ""):
            payload["pipeline_id"] = config.pipeline_id
    elif isinstance(config, AddToBucketConfig):
        contact_data = lead.get("contact") or {}
        custom_data: dict[str, Any] = {
            "amocrm_lead_id": lead_id,
            "amocrm_contact_id": lead.get("contact_id"),
            "priority": config.priority,
            "scheduler_step": config.scheduler_step,
        }
        custom_data.update(lead.get("custom_fields") or {})
        payload = {
            "bucket_id": config.bucket_id,
            "priority": config.priority,
            "scheduler_id": config.scheduler_id,
            "scheduler_step": config.scheduler_step,
            "contact": {
                "phone": contact_data.get("phone", ""),
                "name": contact_data.get("name", ""),
                "email": contact_data.get("email", ""),
                "lead_id": lead_id,
                "custom_data": custom_data,
            },
        }
    elif isinstance(config, ChangePriorityConfig):
        payload = {"lead_id": lead_id, "priority": config.priority}
    elif isinstance(config, ChangeSchedulerStepConfig):
        payload = {"lead_id": lead_id, "scheduler_step": config.scheduler_step}
    elif isinstance(config, RemoveFromDialerConfig):
        payload = {"lead_id": lead_id}
    else:
        subtype = getattr(config, "subtype", None)
        raise FlowExecutionError(f"未知的动作类型: {subtype} (node={node.id})")

    return ActionCommand(
        action_type=config.action_type,
        node_id=node.id,
        lead_id=lead_id,
        payload=payload,
    )


def _stringify(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if value is None:
        return ""
    return str(value)


def _to_float(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


__all__ = ["FlowEngine", "FlowRunResult", "build_command", "evaluate_condition"]
