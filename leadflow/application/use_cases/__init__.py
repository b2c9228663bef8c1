"""Application Use Cases"""

from leadflow.application.use_cases.dry_run_flow import DryRunFlowUseCase
from leadflow.application.use_cases.process_lead_event import ProcessLeadEventUseCase
from leadflow.application.use_cases.save_flow import SaveFlowInput, SaveFlowUseCase

__all__ = [
    "DryRunFlowUseCase",
    "ProcessLeadEventUseCase",
    "SaveFlowInput",
    "SaveFlowUseCase",
]
