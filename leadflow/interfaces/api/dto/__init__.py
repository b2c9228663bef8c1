"""API DTO"""

from leadflow.interfaces.api.dto.flow_dto import (
    ActionCommandDTO,
    DryRunRequest,
    DryRunResponse,
    FlowRequest,
    ValidationResponse,
    ViolationDTO,
)

__all__ = [
    "ActionCommandDTO",
    "DryRunRequest",
    "DryRunResponse",
    "FlowRequest",
    "ValidationResponse",
    "ViolationDTO",
]
