"""GraphStore - 流程图的唯一所有者（Domain Service）

业务定义：
- 持有一个流程的 FlowGraph，提供逐步编辑操作
- 每个操作都是原子的：要么先检查前置条件并抛出 EditError（图保持不变），
  要么完成修改并发布一个变更事件
- 引用完整性（不出现悬空边）在这里立即保证；
  分支、可达性等整图性质由 GraphValidator 在保存/激活前检查

对外只暴露查询和修改方法，外部代码不直接修改 Node / Edge。
"""

from __future__ import annotations

import dataclasses
import logging
from collections.abc import Mapping
from typing import Any

from leadflow.domain.entities.edge import Edge, new_edge_id
from leadflow.domain.entities.flow_graph import FlowGraph
from leadflow.domain.entities.node import Node, new_node_id
from leadflow.domain.events.graph_events import (
    EdgeAdded,
    EdgeReconnected,
    EdgeRemoved,
    GraphReplaced,
    NodeAdded,
    NodeConfigUpdated,
    NodeMoved,
    NodeRemoved,
    NodeRenamed,
)
from leadflow.domain.exceptions import (
    InvalidBranchError,
    InvalidConfigError,
    SelfLoopError,
)
from leadflow.domain.services import config_schema_registry as registry
from leadflow.domain.services.event_bus import Event, EventBus
from leadflow.domain.value_objects.node_config import ConditionOperator, NodeConfig
from leadflow.domain.value_objects.node_kind import Branch, NodeKind
from leadflow.domain.value_objects.position import Position

logger = logging.getLogger(__name__)

MAX_ID_ATTEMPTS = 16


class GraphStore:
    """流程图存储

    使用示例：
        store = GraphStore(flow.graph, event_bus=bus)
        cond_id = store.add_node(NodeKind.CONDITION, position=Position(100, 200))
        store.connect("start_1", cond_id)
    """

    def __init__(self, graph: FlowGraph | None = None, event_bus: EventBus | None = None):
        self._graph = graph if graph is not None else FlowGraph()
        self._event_bus = event_bus if event_bus is not None else EventBus()

    @property
    def graph(self) -> FlowGraph:
        """当前图（只读使用；需要独立副本请用 snapshot()）"""
        return self._graph

    @property
    def event_bus(self) -> EventBus:
        return self._event_bus

    def snapshot(self) -> FlowGraph:
        return self._graph.copy()

    def get_node(self, node_id: str) -> Node:
        return self._graph.get_node(node_id)

    def get_edge(self, edge_id: str) -> Edge:
        return self._graph.get_edge(edge_id)

    # ==================== 节点操作 ====================

    def add_node(
        self,
        kind: NodeKind,
        subtype: str | None = None,
        position: Position | None = None,
        label: str = "",
    ) -> str:
        """添加节点，配置由 ConfigSchemaRegistry 填充默认值

        返回：
            新节点 ID
        """
        try:
            kind = NodeKind(kind)
        except ValueError:
            raise InvalidConfigError(f"未知的节点类型: {kind}") from None
        config = registry.defaults_for(kind, subtype)
        node = Node(
            id=self._allocate_id(lambda: new_node_id(kind), self._graph.nodes),
            kind=kind,
            config=config,
            position=position or Position(),
            label=label,
        )
        self._graph.insert_node(node)
        logger.debug(f"添加节点: {node.id} ({kind.value}/{registry.subtype_of(config)})")
        self._publish(NodeAdded(node_ids=(node.id,)))
        return node.id

    def remove_node(self, node_id: str) -> list[str]:
        """删除节点，并级联删除所有以它为端点的边

        返回：
            被级联删除的边 ID 列表
        """
        removed_edges = self._graph.delete_node(node_id)
        logger.debug(f"删除节点: {node_id}, 级联删除边: {removed_edges}")
        self._publish(NodeRemoved(node_ids=(node_id,), edge_ids=tuple(removed_edges)))
        return removed_edges

    def move_node(self, node_id: str, position: Position) -> None:
        node = self._graph.get_node(node_id)
        self._graph.replace_node(dataclasses.replace(node, position=position))
        self._publish(NodeMoved(node_ids=(node_id,)))

    def rename_node(self, node_id: str, label: str) -> None:
        node = self._graph.get_node(node_id)
        self._graph.replace_node(dataclasses.replace(node, label=label))
        self._publish(NodeRenamed(node_ids=(node_id,)))

    def update_node_config(self, node_id: str, config: NodeConfig | Mapping[str, Any]) -> None:
        """更新节点配置

        规则：
        - 传入完整配置对象：整体替换（类型必须与节点类型匹配）
        - 传入字段映射：子类型标签（field_type / action_type）变化时，先用注册表默认值
          整体重置，再写入其余字段；子类型不变时按字段浅合并
        - start / end 节点没有配置

        抛出：
            DanglingReferenceError: 节点不存在
            InvalidConfigError: 配置类型或字段不匹配
        """
        node = self._graph.get_node(node_id)
        if node.kind in (NodeKind.START, NodeKind.END):
            raise InvalidConfigError(f"{node.kind.value} 节点没有可编辑的配置: {node_id}")

        if isinstance(config, Mapping):
            new_config, reset = self._merge_config(node, config)
        else:
            if registry.expected_kind(config) != node.kind:
                raise InvalidConfigError(
                    f"配置类型 {type(config).__name__} 不适用于 {node.kind.value} 节点: {node_id}"
                )
            new_config = config
            reset = registry.subtype_of(config) != registry.subtype_of(node.config)

        self._graph.replace_node(dataclasses.replace(node, config=new_config))
        logger.debug(
            f"更新节点配置: {node_id}, subtype={registry.subtype_of(new_config)}, reset={reset}"
        )
        self._publish(NodeConfigUpdated(node_ids=(node_id,), subtype_reset=reset))

    def _merge_config(self, node: Node, changes: Mapping[str, Any]) -> tuple[NodeConfig, bool]:
        current = node.config
        if current is None:
            current = registry.defaults_for(node.kind)
        subtype_key = current.subtype_key
        # 映射值复制一份，调用方之后的修改不影响节点
        updates = {
            key: dict(value) if isinstance(value, Mapping) else value
            for key, value in changes.items()
        }

        reset = False
        base = current
        if subtype_key in updates:
            requested = updates.pop(subtype_key)
            requested = getattr(requested, "value", requested)
            if requested != registry.subtype_of(current):
                base = registry.defaults_for(node.kind, requested)
                reset = True

        unknown = set(updates) - registry.field_names(base)
        if unknown:
            raise InvalidConfigError(
                f"{registry.subtype_of(base)} 配置不包含字段: {', '.join(sorted(unknown))}"
            )
        if not updates:
            return base, reset
        if "operator" in updates:
            try:
                updates["operator"] = ConditionOperator(updates["operator"])
            except ValueError:
                raise InvalidConfigError(f"不支持的运算符: {updates['operator']}") from None
        try:
            return dataclasses.replace(base, **updates), reset
        except (TypeError, ValueError) as exc:
            raise InvalidConfigError(f"配置字段无效: {exc}") from exc

    # ==================== 边操作 ====================

    def connect(
        self,
        source_id: str,
        target_id: str,
        branch: Branch | str | bool | None = None,
    ) -> str:
        """连接两个节点

        抛出：
            SelfLoopError: source 与 target 相同
            DanglingReferenceError: 端点不存在
            InvalidBranchError: 条件节点缺少分支或分支重复；非条件节点携带分支

        返回：
            新边 ID
        """
        if source_id == target_id:
            raise SelfLoopError(source_id)

        source = self._graph.get_node(source_id)
        self._graph.get_node(target_id)

        try:
            label = Branch.coerce(branch)
        except ValueError:
            raise InvalidBranchError(f"无法识别的分支标签: {branch!r}") from None

        if source.kind == NodeKind.CONDITION:
            if label is None:
                raise InvalidBranchError(f"条件节点的出边必须指定 true/false 分支: {source_id}")
            if any(edge.branch == label for edge in self._graph.outgoing(source_id)):
                raise InvalidBranchError(f"条件节点 {source_id} 已存在 {label.value} 分支")
        elif label is not None:
            raise InvalidBranchError(
                f"只有条件节点的出边可以带分支标签: {source_id} ({source.kind.value})"
            )

        edge = Edge(
            id=self._allocate_id(new_edge_id, self._graph.edges),
            source_node_id=source_id,
            target_node_id=target_id,
            branch=label,
        )
        self._graph.insert_edge(edge)
        logger.debug(f"连接: {source_id} -> {target_id} ({label.value if label else '-'})")
        self._publish(EdgeAdded(node_ids=(source_id, target_id), edge_ids=(edge.id,)))
        return edge.id

    def disconnect(self, edge_id: str) -> None:
        edge = self._graph.delete_edge(edge_id)
        self._publish(
            EdgeRemoved(node_ids=(edge.source_node_id, edge.target_node_id), edge_ids=(edge_id,))
        )

    def reconnect(self, edge_id: str, target_id: str) -> None:
        """把边改接到新的目标节点，边 ID 和分支保持不变"""
        edge = self._graph.get_edge(edge_id)
        if edge.source_node_id == target_id:
            raise SelfLoopError(target_id)
        previous = edge.target_node_id
        self._graph.retarget_edge(edge_id, target_id)
        self._publish(
            EdgeReconnected(
                node_ids=(edge.source_node_id, target_id),
                edge_ids=(edge_id,),
                previous_target_id=previous,
            )
        )

    # ==================== 整体替换 ====================

    def reconcile(self, server_graph: FlowGraph, flow_id: str = "") -> None:
        """用服务端确认的图整体替换本地状态

        保存请求发出后产生的本地修改不会被合并（后写者胜）。
        """
        self._graph = server_graph.copy()
        logger.info(
            f"流程图已与服务端同步: flow_id={flow_id or '<unsaved>'}, "
            f"nodes={len(self._graph.nodes)}, edges={len(self._graph.edges)}"
        )
        self._publish(
            GraphReplaced(
                node_ids=tuple(self._graph.nodes),
                edge_ids=tuple(self._graph.edges),
                flow_id=flow_id,
            )
        )

    # ==================== 内部 ====================

    def _publish(self, event: Event) -> None:
        event.source = "graph_store"
        self._event_bus.publish(event)

    @staticmethod
    def _allocate_id(factory, existing: Mapping[str, Any]) -> str:
        for _ in range(MAX_ID_ATTEMPTS):
            candidate = factory()
            if candidate not in existing:
                return candidate
        raise RuntimeError("无法分配唯一 ID")


__all__ = ["GraphStore"]
