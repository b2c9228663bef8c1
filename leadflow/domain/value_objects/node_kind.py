"""NodeKind / Branch 枚举

业务定义：
- NodeKind 定义流程图中支持的四种节点
- Branch 是条件节点出边上的分支标签
"""

from enum import Enum


class NodeKind(str, Enum):
    """节点类型枚举

    - START: 开始节点（流程入口，唯一）
    - CONDITION: 条件节点（按线索属性分成 true/false 两支）
    - ACTION: 动作节点（对 CRM 或外呼系统执行操作）
    - END: 结束节点
    """

    START = "start"
    CONDITION = "condition"
    ACTION = "action"
    END = "end"


class Branch(str, Enum):
    """条件节点的分支标签"""

    TRUE = "true"
    FALSE = "false"

    @classmethod
    def coerce(cls, value: "Branch | str | bool | None") -> "Branch | None":
        """把 bool / "true" / "false" 统一转换为 Branch

        抛出：
            ValueError: 无法识别的值
        """
        if value is None or isinstance(value, Branch):
            return value
        if isinstance(value, bool):
            return cls.TRUE if value else cls.FALSE
        return cls(str(value).strip().lower())
