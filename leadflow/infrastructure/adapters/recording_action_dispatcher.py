"""RecordingActionDispatcher - 只记录、不投递的 ActionDispatcher

用于 dry-run 接口和测试：执行流程时收集所有 ActionCommand，
不会触达 CRM 或外呼系统。
"""

import logging

from leadflow.domain.ports.action_dispatcher import ActionCommand

logger = logging.getLogger(__name__)


class RecordingActionDispatcher:
    def __init__(self) -> None:
        self.commands: list[ActionCommand] = []

    async def dispatch(self, command: ActionCommand) -> None:
        logger.debug(f"记录动作命令: {command.action_type.value} (node={command.node_id})")
        self.commands.append(command)
