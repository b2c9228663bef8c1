"""GraphValidator - 流程图结构校验（Domain Service）

目标：
- 激活前强校验：只有零违规的流程图才允许激活
- 保存草稿时仅作提示，不阻止保存
- 编辑过程中不自动运行（刚拖入的条件节点暂时没有出边是正常的）

校验规则：
1. 恰好一个 start 节点，无入边，恰好一条出边
2. 至少一个 end 节点，end 节点没有出边
3. 条件节点恰好两条出边，分支为 {true, false}
4. 动作节点恰好一条出边
5. 边的端点都存在
6. 除 start 外所有节点都能从 start 到达
7. 条件/动作配置完整
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from enum import Enum
from typing import Any

from leadflow.domain.entities.edge import Edge
from leadflow.domain.entities.flow_graph import FlowGraph
from leadflow.domain.entities.node import Node
from leadflow.domain.exceptions import StructuralError
from leadflow.domain.value_objects.node_config import (
    AddToBucketConfig,
    ChangePriorityConfig,
    ChangeSchedulerStepConfig,
    ConditionConfig,
    ConditionFieldType,
    ConditionOperator,
    RemoveFromDialerConfig,
    UnsupportedActionConfig,
    UpdateLeadConfig,
)
from leadflow.domain.value_objects.node_kind import Branch, NodeKind

logger = logging.getLogger(__name__)

PRIORITY_RANGE = (0, 100)
MIN_SCHEDULER_STEP = 1


class ViolationKind(str, Enum):
    NO_START = "NoStart"
    MULTIPLE_STARTS = "MultipleStarts"
    NO_END = "NoEnd"
    UNREACHABLE_NODE = "UnreachableNode"
    BAD_BRANCHING = "BadBranching"
    DANGLING_EDGE = "DanglingEdge"
    INCOMPLETE_CONFIG = "IncompleteConfig"


@dataclass(frozen=True)
class Violation:
    """一条结构违规

    属性说明：
    - kind: 违规类型
    - message: 面向用户的说明
    - node_id / edge_id: 出问题的节点或边（整图级别的违规两者都为 None）
    """

    kind: ViolationKind
    message: str
    node_id: str | None = None
    edge_id: str | None = None

    def to_dict(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"kind": self.kind.value, "message": self.message}
        if self.node_id is not None:
            payload["node_id"] = self.node_id
        if self.edge_id is not None:
            payload["edge_id"] = self.edge_id
        return payload

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "Violation":
        """从 to_dict() 的输出还原（kind 不认识时抛出 ValueError）"""
        return cls(
            kind=ViolationKind(payload["kind"]),
            message=str(payload.get("message", "")),
            node_id=payload.get("node_id"),
            edge_id=payload.get("edge_id"),
        )


def validate(graph: FlowGraph) -> list[Violation]:
    """校验流程图，返回全部违规（空列表表示可以激活）

    流程：
    1. 预处理：统计 start/end，检查边端点，建立出边邻接表
    2. 从 start 做一次广度优先遍历，计算可达集合
    3. 逐节点检查出边数量、分支标签和配置
    """
    violations: list[Violation] = []

    starts = graph.nodes_of_kind(NodeKind.START)
    ends = graph.nodes_of_kind(NodeKind.END)

    if not starts:
        violations.append(Violation(ViolationKind.NO_START, "流程缺少开始节点"))
    for extra in starts[1:]:
        violations.append(
            Violation(
                ViolationKind.MULTIPLE_STARTS,
                f"流程只能有一个开始节点，多余的开始节点: {extra.id}",
                node_id=extra.id,
            )
        )
    if not ends:
        violations.append(Violation(ViolationKind.NO_END, "流程至少需要一个结束节点"))

    outgoing: dict[str, list[Edge]] = {node_id: [] for node_id in graph.nodes}
    incoming_count: dict[str, int] = {node_id: 0 for node_id in graph.nodes}
    for edge in graph.edges.values():
        missing = [
            node_id
            for node_id in (edge.source_node_id, edge.target_node_id)
            if node_id not in graph.nodes
        ]
        if missing:
            violations.append(
                Violation(
                    ViolationKind.DANGLING_EDGE,
                    f"边引用了不存在的节点: {', '.join(missing)}",
                    edge_id=edge.id,
                )
            )
            continue
        outgoing[edge.source_node_id].append(edge)
        incoming_count[edge.target_node_id] += 1

    reachable = _reachable_from(starts, outgoing)

    for node in graph.nodes.values():
        violations.extend(_check_branching(node, outgoing[node.id], incoming_count[node.id]))
        violations.extend(_check_config(node))
        if starts and node.kind != NodeKind.START and node.id not in reachable:
            violations.append(
                Violation(
                    ViolationKind.UNREACHABLE_NODE,
                    f"节点无法从开始节点到达: {node.id}",
                    node_id=node.id,
                )
            )

    logger.debug(f"流程图校验完成: nodes={len(graph.nodes)}, violations={len(violations)}")
    return violations


def validate_or_raise(graph: FlowGraph) -> None:
    """校验失败时抛出 StructuralError"""
    violations = validate(graph)
    if violations:
        raise StructuralError(violations)


def _reachable_from(starts: list[Node], outgoing: dict[str, list[Edge]]) -> set[str]:
    reachable = {node.id for node in starts}
    queue = deque(reachable)
    while queue:
        current = queue.popleft()
        for edge in outgoing[current]:
            if edge.target_node_id not in reachable:
                reachable.add(edge.target_node_id)
                queue.append(edge.target_node_id)
    return reachable


def _check_branching(node: Node, out_edges: list[Edge], incoming: int) -> list[Violation]:
    violations: list[Violation] = []

    def bad(message: str, *, edge_id: str | None = None) -> None:
        violations.append(
            Violation(
                ViolationKind.BAD_BRANCHING,
                message,
                node_id=None if edge_id else node.id,
                edge_id=edge_id,
            )
        )

    if node.kind != NodeKind.CONDITION:
        for edge in out_edges:
            if edge.branch is not None:
                bad(f"只有条件节点的出边可以带分支标签: {edge.id}", edge_id=edge.id)

    if node.kind == NodeKind.START:
        if incoming:
            bad(f"开始节点不能有入边: {node.id}")
        if len(out_edges) != 1:
            bad(f"开始节点必须恰好有一条出边，当前 {len(out_edges)} 条: {node.id}")
    elif node.kind == NodeKind.END:
        if out_edges:
            bad(f"结束节点不能有出边: {node.id}")
    elif node.kind == NodeKind.ACTION:
        if len(out_edges) != 1:
            bad(f"动作节点必须恰好有一条出边，当前 {len(out_edges)} 条: {node.id}")
    elif node.kind == NodeKind.CONDITION:
        labels = [edge.branch for edge in out_edges]
        if len(labels) != 2 or set(labels) != {Branch.TRUE, Branch.FALSE}:
            present = ", ".join(label.value if label else "<none>" for label in labels) or "无"
            bad(f"条件节点必须恰好有 true 和 false 两条出边，当前: {present} ({node.id})")

    return violations


def _check_config(node: Node) -> list[Violation]:
    config = node.config
    problems: list[str] = []

    if node.kind in (NodeKind.START, NodeKind.END):
        if config is not None:
            problems.append(f"{node.kind.value} 节点不应有配置")
    elif node.kind == NodeKind.CONDITION:
        if not isinstance(config, ConditionConfig):
            problems.append("条件节点缺少条件配置")
        else:
            problems.extend(_condition_problems(config))
    elif isinstance(config, UnsupportedActionConfig):
        problems.append(f"不支持的动作类型: {config.action_type_name}")
    elif isinstance(config, UpdateLeadConfig):
        if _is_blank(config.pipeline_id) and _is_blank(config.status_id) and not config.fields:
            problems.append("update_lead 至少需要修改漏斗、状态或字段之一")
    elif isinstance(config, AddToBucketConfig):
        if _is_blank(config.bucket_id):
            problems.append("add_to_bucket 缺少 bucket_id")
        if _is_blank(config.scheduler_id):
            problems.append("add_to_bucket 缺少 scheduler_id")
        problems.extend(_priority_problems(config.priority))
        problems.extend(_scheduler_step_problems(config.scheduler_step))
    elif isinstance(config, ChangePriorityConfig):
        problems.extend(_priority_problems(config.priority))
    elif isinstance(config, ChangeSchedulerStepConfig):
        problems.extend(_scheduler_step_problems(config.scheduler_step))
    elif not isinstance(config, RemoveFromDialerConfig):
        problems.append("动作节点缺少动作配置")

    return [
        Violation(ViolationKind.INCOMPLETE_CONFIG, f"{problem} ({node.id})", node_id=node.id)
        for problem in problems
    ]


def _condition_problems(config: ConditionConfig) -> list[str]:
    problems: list[str] = []
    if config.field_type == ConditionFieldType.AMOCRM_FIELD and _is_blank(config.field):
        problems.append("条件缺少 CRM 字段")
    if config.operator in (ConditionOperator.GREATER_THAN, ConditionOperator.LESS_THAN):
        if _as_number(config.value) is None:
            problems.append(f"运算符 {config.operator.value} 需要数值比较值")
    return problems


def _priority_problems(priority: Any) -> list[str]:
    low, high = PRIORITY_RANGE
    if not _is_int(priority) or not low <= priority <= high:
        return [f"priority 必须是 {low}-{high} 之间的整数"]
    return []


def _scheduler_step_problems(step: Any) -> list[str]:
    if not _is_int(step) or step < MIN_SCHEDULER_STEP:
        return [f"scheduler_step 必须是不小于 {MIN_SCHEDULER_STEP} 的整数"]
    return []


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    return isinstance(value, str) and not value.strip()


def _as_number(value: Any) -> float | None:
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


__all__ = ["Violation", "ViolationKind", "validate", "validate_or_raise"]
