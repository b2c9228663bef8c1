"""Flow DTO（Data Transfer Objects）

流程本身的请求/响应结构与传输格式一致（FlowPayload），
这里只定义接口特有的模型。
"""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from leadflow.domain.services.flow_engine import FlowRunResult
from leadflow.domain.services.graph_validator import Violation
from leadflow.infrastructure.serialization.flow_wire import FlowDataPayload


class FlowRequest(BaseModel):
    """创建/更新流程的请求体

    客户端通常发送完整的 FlowPayload，id 和时间戳由服务端维护，这里忽略。
    """

    name: str = Field(..., description="流程名称")
    flow_data: FlowDataPayload = Field(default_factory=FlowDataPayload, description="流程图")
    is_active: bool = Field(default=False, description="是否启用")

    model_config = ConfigDict(extra="ignore")


class ViolationDTO(BaseModel):
    kind: str
    message: str
    node_id: str | None = None
    edge_id: str | None = None

    @classmethod
    def from_entity(cls, violation: Violation) -> "ViolationDTO":
        return cls(
            kind=violation.kind.value,
            message=violation.message,
            node_id=violation.node_id,
            edge_id=violation.edge_id,
        )


class ValidationResponse(BaseModel):
    """校验结果：valid 为 True 表示可以启用"""

    valid: bool
    violations: list[ViolationDTO] = Field(default_factory=list)


class DryRunRequest(BaseModel):
    """试运行请求：lead 为线索载荷（lead_id、pipeline_id、status_id、自定义字段等）"""

    lead: dict[str, Any] = Field(default_factory=dict)


class ActionCommandDTO(BaseModel):
    action_type: str
    node_id: str
    lead_id: Any = None
    payload: dict[str, Any] = Field(default_factory=dict)


class DryRunResponse(BaseModel):
    completed: bool
    visited_node_ids: list[str] = Field(default_factory=list)
    commands: list[ActionCommandDTO] = Field(default_factory=list)
    stopped_at: str | None = None

    @classmethod
    def from_result(cls, result: FlowRunResult) -> "DryRunResponse":
        return cls(
            completed=result.completed,
            visited_node_ids=list(result.visited_node_ids),
            commands=[
                ActionCommandDTO(
                    action_type=command.action_type.value,
                    node_id=command.node_id,
                    lead_id=command.lead_id,
                    payload=command.payload,
                )
                for command in result.commands
            ],
            stopped_at=result.stopped_at,
        )
