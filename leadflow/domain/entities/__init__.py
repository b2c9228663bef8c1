"""Domain 实体

导出所有领域实体，方便其他模块导入
"""

from leadflow.domain.entities.edge import Edge
from leadflow.domain.entities.flow import Flow, FlowSummary
from leadflow.domain.entities.flow_graph import FlowGraph
from leadflow.domain.entities.node import Node

__all__ = ["Edge", "Flow", "FlowGraph", "FlowSummary", "Node"]
