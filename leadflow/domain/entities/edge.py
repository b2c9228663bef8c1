"""Edge 实体 - 节点之间的有向连接

业务定义：
- Edge 是一等实体，ID 与 (source, target) 无关，重新连接时可以保留身份
- branch 仅出现在源节点为条件节点的边上
"""

from dataclasses import dataclass
from uuid import uuid4

from leadflow.domain.value_objects.node_kind import Branch


def new_edge_id() -> str:
    """生成边 ID（edge_ 前缀）"""
    return f"edge_{uuid4().hex[:8]}"


@dataclass
class Edge:
    """Edge 实体

    属性说明：
    - id: 唯一标识符
    - source_node_id: 源节点 ID
    - target_node_id: 目标节点 ID
    - branch: 分支标签（仅条件节点的出边）
    """

    id: str
    source_node_id: str
    target_node_id: str
    branch: Branch | None = None
