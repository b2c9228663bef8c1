"""Flow 实体 - 流程聚合根

业务定义：
- Flow 拥有一张 FlowGraph，描述按线索属性分支并触发动作的自动化流程
- is_active 决定后端执行器是否对实时线索运行该流程
- 首次保存成功后由后端分配 ID；未保存的流程 ID 为空字符串
"""

from dataclasses import dataclass, field
from datetime import datetime

from leadflow.domain.entities.edge import Edge
from leadflow.domain.entities.flow_graph import FlowGraph
from leadflow.domain.entities.node import Node
from leadflow.domain.exceptions import DomainError
from leadflow.domain.value_objects.node_kind import NodeKind
from leadflow.domain.value_objects.position import Position

UNSAVED_FLOW_ID = ""

TEMPLATE_START_ID = "start_1"
TEMPLATE_END_ID = "end_1"


@dataclass
class Flow:
    """Flow 实体（聚合根）

    属性说明：
    - id: 唯一标识符（未保存时为空字符串）
    - name: 流程名称
    - graph: 流程图
    - is_active: 是否启用
    - created_at / updated_at: 由后端维护，未保存时为 None
    """

    id: str
    name: str
    graph: FlowGraph = field(default_factory=FlowGraph)
    is_active: bool = False
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def is_persisted(self) -> bool:
        return self.id != UNSAVED_FLOW_ID

    @classmethod
    def create_template(cls, name: str) -> "Flow":
        """创建新流程模板：start_1 → end_1

        模板本身就是结构合法的流程，可以直接通过校验。

        抛出：
            DomainError: 当 name 为空时
        """
        if not name or not name.strip():
            raise DomainError("name 不能为空")

        graph = FlowGraph.from_parts(
            nodes=[
                Node(id=TEMPLATE_START_ID, kind=NodeKind.START, position=Position(250, 50)),
                Node(id=TEMPLATE_END_ID, kind=NodeKind.END, position=Position(250, 300)),
            ],
            edges=[
                Edge(
                    id=f"edge_{TEMPLATE_START_ID}_{TEMPLATE_END_ID}",
                    source_node_id=TEMPLATE_START_ID,
                    target_node_id=TEMPLATE_END_ID,
                )
            ],
        )
        return cls(id=UNSAVED_FLOW_ID, name=name.strip(), graph=graph)

    def summary(self) -> "FlowSummary":
        return FlowSummary(
            id=self.id,
            name=self.name,
            is_active=self.is_active,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


@dataclass(frozen=True)
class FlowSummary:
    """流程列表项（不含流程图）"""

    id: str
    name: str
    is_active: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None
