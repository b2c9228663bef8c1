"""Node 实体 - 流程图中的一个步骤

业务定义：
- Node 是流程图中的单个步骤：开始、条件判断、动作或结束
- 配置的形状由 kind（以及条件/动作的子类型）决定
- position 只用于画布显示

Node 只能通过 GraphStore 的操作被修改，外部代码不应就地修改持有的引用。
"""

from dataclasses import dataclass, field
from uuid import uuid4

from leadflow.domain.value_objects.node_config import NodeConfig
from leadflow.domain.value_objects.node_kind import NodeKind
from leadflow.domain.value_objects.position import Position

DEFAULT_LABELS: dict[NodeKind, str] = {
    NodeKind.START: "Start",
    NodeKind.CONDITION: "Condition",
    NodeKind.ACTION: "Action",
    NodeKind.END: "End",
}


def new_node_id(kind: NodeKind) -> str:
    """生成节点 ID（kind 前缀 + 随机后缀）"""
    return f"{kind.value}_{uuid4().hex[:8]}"


@dataclass
class Node:
    """Node 实体

    属性说明：
    - id: 图内唯一标识符（客户端创建时分配）
    - kind: 节点类型
    - config: 节点配置（封闭联合类型，start/end 为 None）
    - position: 画布位置
    - label: 显示名称（仅 UI 使用）
    """

    id: str
    kind: NodeKind
    config: NodeConfig = None
    position: Position = field(default_factory=Position)
    label: str = ""

    def __post_init__(self) -> None:
        if not self.label:
            self.label = DEFAULT_LABELS[self.kind]
