"""ActionDispatcher Port - 动作命令的投递接口

FlowEngine 执行动作节点时生成 ActionCommand，通过这个接口交给 CRM / 外呼系统。
具体的 CRM、外呼客户端不在本项目范围内，由基础设施层实现。
"""

from dataclasses import dataclass, field
from typing import Any, Protocol

from leadflow.domain.value_objects.node_config import ActionType


@dataclass(frozen=True)
class ActionCommand:
    """一次动作投递

    属性说明：
    - action_type: 动作子类型
    - node_id: 产生该命令的动作节点
    - lead_id: 线索 ID（来自执行输入）
    - payload: 发送给下游系统的消息体
    """

    action_type: ActionType
    node_id: str
    lead_id: Any = None
    payload: dict[str, Any] = field(default_factory=dict)


class ActionDispatcher(Protocol):
    """动作投递接口"""

    async def dispatch(self, command: ActionCommand) -> None:
        """投递一条命令

        实现要求：
        - 投递失败应抛出异常，由 FlowEngine 转换为 FlowExecutionError
        """
        ...
