"""FlowRepository Port - 后端的流程存储接口

后端服务（FastAPI）通过这个接口读写流程，具体实现见
leadflow.infrastructure.database.repositories.flow_repository。

方法命名规范：
- save(): 保存实体（新增或更新）
- get_by_id(): 根据 ID 获取实体（不存在抛异常）
- find_by_id(): 根据 ID 查找实体（不存在返回 None）
- find_all(): 查找所有流程
- find_active(): 查找已启用的流程
- exists(): 检查实体是否存在
- delete(): 删除实体
"""

from typing import Protocol

from leadflow.domain.entities.flow import Flow


class FlowRepository(Protocol):
    """Flow 仓储接口"""

    def save(self, flow: Flow) -> None:
        """保存 Flow（新增或更新），事务由调用者提交"""
        ...

    def get_by_id(self, flow_id: str) -> Flow:
        """根据 ID 获取 Flow

        抛出：
            NotFoundError: 当 Flow 不存在时
        """
        ...

    def find_by_id(self, flow_id: str) -> Flow | None:
        ...

    def find_all(self) -> list[Flow]:
        ...

    def find_active(self) -> list[Flow]:
        ...

    def exists(self, flow_id: str) -> bool:
        ...

    def delete(self, flow_id: str) -> None:
        """删除 Flow（幂等）"""
        ...
