"""Position 值对象 - 节点在画布上的位置

业务定义：
- Position 表示节点在流程编辑器画布上的坐标
- 只用于显示，校验和执行都不解读它
"""

from dataclasses import dataclass


@dataclass(frozen=True)
class Position:
    """Position 值对象

    属性说明：
    - x: 横坐标（像素，可以为负）
    - y: 纵坐标（像素，可以为负）

    示例：
    >>> Position(x=100, y=200) == Position(x=100, y=200)
    True
    """

    x: float = 0.0
    y: float = 0.0
