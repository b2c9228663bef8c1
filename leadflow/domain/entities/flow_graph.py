"""FlowGraph 实体 - 一个流程拥有的节点和边

业务定义：
- nodes / edges 以 ID 为键保存，插入顺序即显示顺序
- 额外维护 "节点 ID → 关联边 ID" 的索引，删除节点时只需处理关联边

FlowGraph 只负责数据结构和引用完整性（边的端点必须存在），
分支、可达性等整图性质由 GraphValidator 在需要时检查。
"""

from __future__ import annotations

import copy
from collections.abc import Iterable
from dataclasses import dataclass, field

from leadflow.domain.entities.edge import Edge
from leadflow.domain.entities.node import Node
from leadflow.domain.exceptions import DanglingReferenceError, EditError
from leadflow.domain.value_objects.node_kind import NodeKind


@dataclass
class FlowGraph:
    """FlowGraph 实体

    属性说明：
    - nodes: 节点字典（ID → Node）
    - edges: 边字典（ID → Edge）

    相等性只比较 nodes 和 edges，关联索引是派生数据。
    """

    nodes: dict[str, Node] = field(default_factory=dict)
    edges: dict[str, Edge] = field(default_factory=dict)
    _incident: dict[str, dict[str, None]] = field(
        default_factory=dict, init=False, repr=False, compare=False
    )

    def __post_init__(self) -> None:
        self._rebuild_index()

    @classmethod
    def from_parts(cls, nodes: Iterable[Node], edges: Iterable[Edge]) -> FlowGraph:
        """从节点和边列表构建（不检查端点，悬空边交给校验器报告）"""
        return cls(
            nodes={node.id: node for node in nodes},
            edges={edge.id: edge for edge in edges},
        )

    def _rebuild_index(self) -> None:
        self._incident = {}
        for edge in self.edges.values():
            self._index_edge(edge)

    def _index_edge(self, edge: Edge) -> None:
        self._incident.setdefault(edge.source_node_id, {})[edge.id] = None
        self._incident.setdefault(edge.target_node_id, {})[edge.id] = None

    def _unindex_edge(self, edge: Edge) -> None:
        for node_id in (edge.source_node_id, edge.target_node_id):
            edge_ids = self._incident.get(node_id)
            if edge_ids is None:
                continue
            edge_ids.pop(edge.id, None)
            if not edge_ids:
                del self._incident[node_id]

    # ==================== 查询 ====================

    def has_node(self, node_id: str) -> bool:
        return node_id in self.nodes

    def get_node(self, node_id: str) -> Node:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise DanglingReferenceError("Node", node_id) from None

    def get_edge(self, edge_id: str) -> Edge:
        try:
            return self.edges[edge_id]
        except KeyError:
            raise DanglingReferenceError("Edge", edge_id) from None

    def incident_edge_ids(self, node_id: str) -> set[str]:
        return set(self._incident.get(node_id, ()))

    def outgoing(self, node_id: str) -> list[Edge]:
        incident = (self.edges[edge_id] for edge_id in self._incident.get(node_id, {}))
        return [edge for edge in incident if edge.source_node_id == node_id]

    def incoming(self, node_id: str) -> list[Edge]:
        incident = (self.edges[edge_id] for edge_id in self._incident.get(node_id, {}))
        return [edge for edge in incident if edge.target_node_id == node_id]

    def nodes_of_kind(self, kind: NodeKind) -> list[Node]:
        return [node for node in self.nodes.values() if node.kind == kind]

    # ==================== 修改 ====================

    def insert_node(self, node: Node) -> None:
        if node.id in self.nodes:
            raise EditError(f"节点 ID 重复: {node.id}")
        self.nodes[node.id] = node

    def replace_node(self, node: Node) -> None:
        if node.id not in self.nodes:
            raise DanglingReferenceError("Node", node.id)
        self.nodes[node.id] = node

    def insert_edge(self, edge: Edge) -> None:
        """插入边，端点必须已存在"""
        if edge.id in self.edges:
            raise EditError(f"边 ID 重复: {edge.id}")
        for node_id in (edge.source_node_id, edge.target_node_id):
            if node_id not in self.nodes:
                raise DanglingReferenceError("Node", node_id)
        self.edges[edge.id] = edge
        self._index_edge(edge)

    def delete_edge(self, edge_id: str) -> Edge:
        edge = self.get_edge(edge_id)
        del self.edges[edge_id]
        self._unindex_edge(edge)
        return edge

    def retarget_edge(self, edge_id: str, target_node_id: str) -> Edge:
        edge = self.get_edge(edge_id)
        if target_node_id not in self.nodes:
            raise DanglingReferenceError("Node", target_node_id)
        self._unindex_edge(edge)
        edge.target_node_id = target_node_id
        self._index_edge(edge)
        return edge

    def delete_node(self, node_id: str) -> list[str]:
        """删除节点并级联删除所有关联边

        返回：
            被删除的边 ID 列表
        """
        if node_id not in self.nodes:
            raise DanglingReferenceError("Node", node_id)
        removed = list(self._incident.get(node_id, {}))
        for edge_id in removed:
            self.delete_edge(edge_id)
        del self.nodes[node_id]
        return removed

    def copy(self) -> FlowGraph:
        """深拷贝（序列化和快照使用）"""
        return FlowGraph(
            nodes=copy.deepcopy(self.nodes),
            edges=copy.deepcopy(self.edges),
        )
