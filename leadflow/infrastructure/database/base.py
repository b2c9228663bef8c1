"""ORM 模型基类

所有 ORM 模型继承自 Base；Base.metadata 在应用启动时用于建表。
"""

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """ORM 模型基类（SQLAlchemy 2.0 DeclarativeBase）"""

    pass
