"""EditingSession - 编辑端的单写者会话

业务定义：
- 一个会话同一时间编辑一个流程，GraphStore 是唯一的写入者
- 观察者（画布、属性面板）通过 subscribe() 接收每一个变更事件
- 保存：快照 → 发送完整流程图 → 用服务端返回的图整体替换本地状态
- 保存在途时图仍可编辑；这些编辑会在保存成功后被服务端版本覆盖（后写者胜）
- 保存在途时再次保存会被拒绝（SaveInProgressError）
- 任何失败都不修改本地图

激活规则：
- 本地校验零违规才发起请求（后端还会再校验一次）
- 请求失败时 is_active 保持原值
"""

import logging
from dataclasses import replace

from leadflow.domain.entities.flow import Flow
from leadflow.domain.entities.flow_graph import FlowGraph
from leadflow.domain.events.graph_events import GraphChanged, GraphReplaced
from leadflow.domain.exceptions import DomainError, SaveInProgressError, StructuralError
from leadflow.domain.ports.flow_persistence import FlowPersistence
from leadflow.domain.services.event_bus import Event, EventBus, EventHandler
from leadflow.domain.services.graph_store import GraphStore
from leadflow.domain.services.graph_validator import Violation, validate

logger = logging.getLogger(__name__)


class EditingSession:
    """编辑会话

    使用示例：
        session = EditingSession(HttpFlowPersistenceAdapter(client))
        session.subscribe(GraphChanged, canvas.on_change)
        await session.open(flow_id)
        cond = session.store.add_node(NodeKind.CONDITION)
        ...
        await session.save()
    """

    def __init__(self, persistence: FlowPersistence, event_bus: EventBus | None = None):
        self.persistence = persistence
        self.event_bus = event_bus if event_bus is not None else EventBus()
        self._store = GraphStore(event_bus=self.event_bus)
        self._flow: Flow | None = None
        self._saving = False
        self._dirty = False
        self.event_bus.subscribe(GraphChanged, self._track_changes)

    # ==================== 状态 ====================

    @property
    def store(self) -> GraphStore:
        self._require_flow()
        return self._store

    @property
    def flow(self) -> Flow:
        """当前流程（元数据 + 流程图快照）"""
        current = self._require_flow()
        return replace(current, graph=self._store.snapshot())

    @property
    def is_open(self) -> bool:
        return self._flow is not None

    @property
    def is_saving(self) -> bool:
        return self._saving

    @property
    def is_dirty(self) -> bool:
        """上次同步后是否有未保存的修改"""
        return self._dirty

    # ==================== 打开 ====================

    def new_flow(self, name: str) -> GraphStore:
        """用模板（start_1 → end_1）开始编辑一个未保存的流程"""
        flow = Flow.create_template(name)
        self._replace(flow)
        logger.info(f"新建流程: name={flow.name}")
        return self._store

    async def open(self, flow_id: str) -> GraphStore:
        """加载流程并替换本地状态

        抛出：
            NotFoundError / TransportError / AuthError / SerializationError
        """
        flow = await self.persistence.load(flow_id)
        self._replace(flow)
        logger.info(f"打开流程: flow_id={flow.id}, nodes={len(flow.graph.nodes)}")
        return self._store

    # ==================== 订阅 ====================

    def subscribe(self, event_type: type[Event], handler: EventHandler) -> None:
        """订阅变更事件（订阅 GraphChanged 可以收到全部图变更）"""
        self.event_bus.subscribe(event_type, handler)

    def unsubscribe(self, event_type: type[Event], handler: EventHandler) -> bool:
        return self.event_bus.unsubscribe(event_type, handler)

    # ==================== 校验与保存 ====================

    def validate(self) -> list[Violation]:
        self._require_flow()
        return validate(self._store.graph)

    def rename(self, name: str) -> None:
        """修改流程名称（下次保存时生效）"""
        current = self._require_flow()
        if not name or not name.strip():
            raise DomainError("name 不能为空")
        self._flow = replace(current, name=name.strip())
        self._dirty = True

    async def save(self) -> Flow:
        """保存草稿（校验只作提示）"""
        current = self._require_flow()
        violations = self.validate()
        if violations:
            logger.info(
                f"草稿保存，流程图存在 {len(violations)} 个结构问题: flow_id={current.id or '<unsaved>'}"
            )
        return await self._persist(is_active=current.is_active)

    async def activate(self) -> Flow:
        """启用流程

        抛出：
            StructuralError: 本地校验存在违规（不发请求）
        """
        self._require_flow()
        violations = self.validate()
        if violations:
            raise StructuralError(violations)
        return await self._persist(is_active=True)

    async def deactivate(self) -> Flow:
        self._require_flow()
        return await self._persist(is_active=False)

    async def _persist(self, is_active: bool) -> Flow:
        current = self._require_flow()
        if self._saving:
            raise SaveInProgressError(current.id)

        self._saving = True
        try:
            outgoing = replace(current, graph=self._store.snapshot(), is_active=is_active)
            saved = await self.persistence.save(outgoing)
        finally:
            self._saving = False

        self._replace(saved)
        logger.info(f"流程已保存: flow_id={saved.id}, is_active={saved.is_active}")
        return self.flow

    # ==================== 内部 ====================

    def _replace(self, flow: Flow) -> None:
        self._flow = replace(flow, graph=FlowGraph())
        self._store.reconcile(flow.graph, flow_id=flow.id)

    def _require_flow(self) -> Flow:
        if self._flow is None:
            raise DomainError("没有打开的流程")
        return self._flow

    def _track_changes(self, event: Event) -> None:
        self._dirty = not isinstance(event, GraphReplaced)


__all__ = ["EditingSession"]
