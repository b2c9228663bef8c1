"""Pytest 配置文件 - 全局 fixtures"""

import pytest

from leadflow.domain.entities.edge import Edge
from leadflow.domain.entities.flow import Flow
from leadflow.domain.entities.flow_graph import FlowGraph
from leadflow.domain.entities.node import Node
from leadflow.domain.services.event_bus import EventBus
from leadflow.domain.services.graph_store import GraphStore
from leadflow.domain.value_objects.node_config import (
    AddToBucketConfig,
    ConditionConfig,
    ConditionFieldType,
    ConditionOperator,
)
from leadflow.domain.value_objects.node_kind import Branch, NodeKind
from leadflow.domain.value_objects.position import Position


@pytest.fixture
def template_flow() -> Flow:
    """新建流程模板：start_1 → end_1"""
    return Flow.create_template("Test flow")


@pytest.fixture
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture
def store(template_flow: Flow, event_bus: EventBus) -> GraphStore:
    """基于模板的 GraphStore"""
    return GraphStore(template_flow.graph.copy(), event_bus=event_bus)


@pytest.fixture
def branching_graph() -> FlowGraph:
    """结构合法的分支流程

    start_1 → condition_1 (status == 142)
        true  → action_1 (add_to_bucket) → end_1
        false → end_1
    """
    return FlowGraph.from_parts(
        nodes=[
            Node(id="start_1", kind=NodeKind.START, position=Position(250, 50)),
            Node(
                id="condition_1",
                kind=NodeKind.CONDITION,
                config=ConditionConfig(
                    field_type=ConditionFieldType.STATUS,
                    operator=ConditionOperator.EQUALS,
                    value="142",
                ),
                position=Position(250, 150),
                label="Status is qualified",
            ),
            Node(
                id="action_1",
                kind=NodeKind.ACTION,
                config=AddToBucketConfig(
                    bucket_id="bucket-1",
                    priority=80,
                    scheduler_id="scheduler-1",
                    scheduler_step=2,
                ),
                position=Position(100, 250),
            ),
            Node(id="end_1", kind=NodeKind.END, position=Position(250, 400)),
        ],
        edges=[
            Edge(id="edge_1", source_node_id="start_1", target_node_id="condition_1"),
            Edge(
                id="edge_2",
                source_node_id="condition_1",
                target_node_id="action_1",
                branch=Branch.TRUE,
            ),
            Edge(
                id="edge_3",
                source_node_id="condition_1",
                target_node_id="end_1",
                branch=Branch.FALSE,
            ),
            Edge(id="edge_4", source_node_id="action_1", target_node_id="end_1"),
        ],
    )


@pytest.fixture
def branching_flow(branching_graph: FlowGraph) -> Flow:
    return Flow(id="", name="Qualified leads to dialer", graph=branching_graph)


@pytest.fixture
def sample_lead() -> dict:
    """线索载荷示例"""
    return {
        "lead_id": 1001,
        "contact_id": 2002,
        "pipeline_id": 7,
        "status_id": 142,
        "dial_attempts": 3,
        "contact": {"phone": "+79990001122", "name": "Ivan", "email": "ivan@example.com"},
        "custom_fields": {"city": "Kazan"},
        "city": "Kazan",
    }
