"""ORM 模型 - 数据库表映射

流程图以传输格式（flow_data JSON）整体存储，与编辑端交换的结构一致。
"""

from datetime import datetime

from sqlalchemy import JSON, Boolean, DateTime, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from leadflow.infrastructure.database.base import Base


class IntegrationFlowModel(Base):
    """IntegrationFlow ORM 模型

    表名：integration_flows

    字段说明：
    - id: 主键（UUID 字符串）
    - name: 流程名称（255 字符）
    - flow_data: 流程图 JSON（{nodes, edges}）
    - is_active: 是否启用
    - created_at / updated_at: 时间戳

    索引：
    - idx_integration_flows_is_active: 查询已启用流程
    - idx_integration_flows_created_at: 按时间排序
    """

    __tablename__ = "integration_flows"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, comment="Flow ID（UUID）")
    name: Mapped[str] = mapped_column(String(255), nullable=False, comment="流程名称")
    flow_data: Mapped[dict] = mapped_column(
        JSON, nullable=False, default=dict, comment="流程图（nodes/edges）"
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, comment="是否启用"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, comment="创建时间"
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now, onupdate=datetime.now, comment="更新时间"
    )

    __table_args__ = (
        Index("idx_integration_flows_is_active", "is_active"),
        Index("idx_integration_flows_created_at", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<IntegrationFlowModel(id={self.id}, name={self.name}, is_active={self.is_active})>"
