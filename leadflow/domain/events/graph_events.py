"""流程图变更事件

每次成功的 GraphStore 修改都会发布一个事件，携带被修改实体的 ID。
编辑会话把这些事件转发给观察者（渲染层等）。
"""

from dataclasses import dataclass

from leadflow.domain.services.event_bus import Event


@dataclass
class GraphChanged(Event):
    """所有流程图变更事件的基类，订阅它即可收到全部变更"""

    node_ids: tuple[str, ...] = ()
    edge_ids: tuple[str, ...] = ()


@dataclass
class NodeAdded(GraphChanged):
    pass


@dataclass
class NodeRemoved(GraphChanged):
    """node_ids 为被删节点，edge_ids 为级联删除的边"""

    pass


@dataclass
class NodeMoved(GraphChanged):
    pass


@dataclass
class NodeRenamed(GraphChanged):
    pass


@dataclass
class NodeConfigUpdated(GraphChanged):
    """subtype_reset 为 True 表示子类型变化导致配置被整体重置"""

    subtype_reset: bool = False


@dataclass
class EdgeAdded(GraphChanged):
    pass


@dataclass
class EdgeRemoved(GraphChanged):
    pass


@dataclass
class EdgeReconnected(GraphChanged):
    previous_target_id: str = ""


@dataclass
class GraphReplaced(GraphChanged):
    """reconcile：本地状态被服务端确认的图整体替换"""

    flow_id: str = ""


__all__ = [
    "EdgeAdded",
    "EdgeReconnected",
    "EdgeRemoved",
    "GraphChanged",
    "GraphReplaced",
    "NodeAdded",
    "NodeConfigUpdated",
    "NodeMoved",
    "NodeRemoved",
    "NodeRenamed",
]
