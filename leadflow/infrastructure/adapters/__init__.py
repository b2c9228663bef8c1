"""Infrastructure Adapters Package

Domain Port 的基础设施层实现。
"""

from leadflow.infrastructure.adapters.recording_action_dispatcher import (
    RecordingActionDispatcher,
)

__all__ = ["RecordingActionDispatcher"]
