"""领域层 Ports - 定义领域层需要的外部依赖接口

设计原则：
- 使用 Protocol 定义接口（结构化子类型）
- 方法签名使用领域对象
- 不依赖任何框架
"""

from leadflow.domain.ports.action_dispatcher import ActionCommand, ActionDispatcher
from leadflow.domain.ports.flow_persistence import FlowPersistence
from leadflow.domain.ports.flow_repository import FlowRepository

__all__ = [
    "ActionCommand",
    "ActionDispatcher",
    "FlowPersistence",
    "FlowRepository",
]
