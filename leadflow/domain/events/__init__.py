"""Domain 事件"""

from leadflow.domain.events.graph_events import (
    EdgeAdded,
    EdgeReconnected,
    EdgeRemoved,
    GraphChanged,
    GraphReplaced,
    NodeAdded,
    NodeConfigUpdated,
    NodeMoved,
    NodeRemoved,
    NodeRenamed,
)

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
