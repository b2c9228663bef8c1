"""事件总线 (EventBus) - 流程图变更的通知机制

业务定义：
- GraphStore 每次成功修改后发布一个事件
- 编辑会话、渲染层等观察者通过订阅接收变更
- 编辑操作在单线程中同步发生，事件也同步分发

设计原则：
- 纯 Python 实现，不依赖外部消息队列
- 支持类型过滤：订阅某个事件类型时，也会收到它的子类事件
- 错误隔离：单个处理器异常不影响其他处理器，也不影响已完成的修改

核心概念：
- Event: 事件基类，所有业务事件继承此类
- EventBus: 事件总线，负责事件的发布和分发
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from uuid import uuid4

logger = logging.getLogger(__name__)


@dataclass
class Event:
    """事件基类

    属性说明：
    - id: 事件唯一标识符（UUID）
    - timestamp: 事件创建时间
    - source: 事件来源
    - correlation_id: 关联ID，用于追踪事件因果关系

    使用示例：
        @dataclass
        class NodeAdded(Event):
            node_ids: tuple[str, ...] = ()
    """

    id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=datetime.now)
    source: str = ""
    correlation_id: str | None = None


# 类型定义
EventHandler = Callable[[Event], None]


class EventBus:
    """事件总线

    职责：
    1. 管理事件订阅关系
    2. 分发事件到对应的处理器
    3. 记录事件日志（可限制长度）

    使用示例：
        event_bus = EventBus()
        event_bus.subscribe(GraphChanged, handler)
        event_bus.publish(NodeAdded(node_ids=("action_1a2b3c4d",)))
    """

    def __init__(self, max_log_size: int | None = 1000):
        # 订阅者映射：事件类型 -> 处理器列表
        self._subscribers: dict[type[Event], list[EventHandler]] = {}
        self._event_log: list[Event] = []
        self._max_log_size = max_log_size

    @property
    def event_log(self) -> list[Event]:
        """获取事件日志（只读）"""
        return self._event_log

    def subscribe(self, event_type: type[Event], handler: EventHandler) -> None:
        """订阅特定类型的事件

        参数：
            event_type: 要订阅的事件类型（子类事件同样会被分发）
            handler: 同步处理器函数
        """
        if event_type not in self._subscribers:
            self._subscribers[event_type] = []

        self._subscribers[event_type].append(handler)
        logger.debug(
            f"订阅事件: {event_type.__name__}, 当前订阅者数: {len(self._subscribers[event_type])}"
        )

    def unsubscribe(self, event_type: type[Event], handler: EventHandler) -> bool:
        """取消订阅，返回是否成功移除"""
        handlers = self._subscribers.get(event_type)
        if not handlers or handler not in handlers:
            return False

        handlers.remove(handler)
        logger.debug(f"取消订阅: {event_type.__name__}, 剩余订阅者数: {len(handlers)}")
        return True

    def publish(self, event: Event) -> None:
        """发布事件

        执行流程：
        1. 记录事件到日志
        2. 按 MRO 顺序找到所有匹配的订阅者并依次调用
        3. 捕获并记录处理器异常（不影响其他处理器）
        """
        logger.debug(f"发布事件: {type(event).__name__}, id={event.id}")

        self._event_log.append(event)
        if self._max_log_size is not None and len(self._event_log) > self._max_log_size:
            del self._event_log[: len(self._event_log) - self._max_log_size]

        self._dispatch_to_subscribers(event)

    def _dispatch_to_subscribers(self, event: Event) -> None:
        handlers: list[EventHandler] = []
        for event_type in type(event).__mro__:
            handlers.extend(self._subscribers.get(event_type, []))

        for handler in handlers:
            try:
                handler(event)
            except Exception as e:
                logger.error(
                    f"事件处理器异常: {getattr(handler, '__name__', repr(handler))}, "
                    f"event_type={type(event).__name__}, "
                    f"event_id={event.id}, "
                    f"error={e}",
                    exc_info=True,
                )


# 导出
__all__ = ["Event", "EventBus", "EventHandler"]
