"""应用配置模块 - 使用 Pydantic Settings 管理环境变量"""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """应用配置类"""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="LeadFlow", description="应用名称")
    app_version: str = Field(default="0.1.0", description="应用版本")
    env: Literal["development", "production", "test"] = Field(
        default="development", description="运行环境"
    )
    debug: bool = Field(default=False, description="调试模式")
    log_level: str = Field(default="INFO", description="日志级别")

    # Server
    host: str = Field(default="0.0.0.0", description="服务器地址")
    port: int = Field(default=8080, description="服务器端口")
    reload: bool = Field(default=False, description="热重载")

    # Database
    database_url: str = Field(
        default="sqlite:///./leadflow.db",
        description="数据库连接 URL",
    )

    # CORS
    cors_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://127.0.0.1:3000",
        ],
        description="允许的跨域源",
    )

    # Backend API (editor side)
    api_base_url: str = Field(default="http://localhost:8080", description="后端 API 地址")
    request_timeout: float = Field(default=30.0, description="请求超时时间（秒）")
    auth_refresh_path: str = Field(
        default="/api/v1/auth/refresh", description="令牌刷新接口路径"
    )

    # Flow engine
    flow_engine_max_steps: int = Field(default=1000, description="单次执行最多访问的节点数")


# 全局配置实例
settings = Settings()
