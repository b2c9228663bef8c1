"""领域层异常定义

异常分层：
- StructuralError: 校验器发现的结构问题（可由用户修正，只阻止激活）
- EditError: 非法的本地编辑操作（同步拒绝，图保持不变）
- TransportError / AuthError: 与后端通信失败
- NotFoundError: 实体不存在

上层（API、编辑会话）统一捕获 DomainError 并转换为用户可见的错误。
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from leadflow.domain.services.graph_validator import Violation


class DomainError(Exception):
    """领域层异常基类

    用途：
    - 表示业务规则违反（如：条件节点分支重复）
    - 表示领域不变式违反
    """

    pass


class NotFoundError(DomainError):
    """实体不存在异常

    参数：
        entity_type: 实体类型（如："Flow"、"Node"）
        entity_id: 实体 ID
    """

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} 不存在: {entity_id}")


class EditError(DomainError):
    """非法编辑操作

    在任何修改发生之前抛出，抛出后图保持原状。
    """

    pass


class InvalidBranchError(EditError):
    """分支标签非法：条件节点缺少/重复分支，或非条件节点携带分支"""

    pass


class SelfLoopError(EditError):
    """节点连接到自身"""

    def __init__(self, node_id: str):
        self.node_id = node_id
        super().__init__(f"节点不能连接到自己: {node_id}")


class DanglingReferenceError(EditError):
    """引用了图中不存在的节点或边"""

    def __init__(self, entity_type: str, entity_id: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        super().__init__(f"{entity_type} 不存在: {entity_id}")


class InvalidConfigError(EditError):
    """节点配置与节点类型/子类型不匹配"""

    pass


class StructuralError(DomainError):
    """图结构校验失败

    属性：
        violations: 校验器返回的违规列表
    """

    def __init__(self, violations: list[Violation]):
        self.violations = list(violations)
        kinds = ", ".join(sorted({v.kind.value for v in self.violations}))
        super().__init__(f"流程图存在 {len(self.violations)} 个结构问题: {kinds}")


class SerializationError(DomainError):
    """传输格式无法解析为领域对象"""

    pass


class TransportError(DomainError):
    """网络错误、超时或服务端 5xx

    retryable 为 True 时前端可以提示用户重试；本地图状态保持不变。
    """

    def __init__(self, message: str, *, status_code: int | None = None, retryable: bool = True):
        self.status_code = status_code
        self.retryable = retryable
        super().__init__(message)


class AuthError(DomainError):
    """认证失败（刷新令牌失败或刷新后仍然 401）"""

    pass


class SaveInProgressError(DomainError):
    """已有保存请求在途，拒绝重复保存"""

    def __init__(self, flow_id: str):
        self.flow_id = flow_id
        super().__init__(f"流程正在保存中: {flow_id or '<unsaved>'}")


class FlowExecutionError(DomainError):
    """流程执行失败"""

    pass
