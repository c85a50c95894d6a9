from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    # 数据库配置
    database_url: str = "duckdb://./data/canteen.duckdb"
    pool_size: int = 5
    pool_timeout_sec: float = 5.0  # 获取连接的最长等待时间

    # 分页配置
    default_page_size: int = 20
    max_page_size: int = 100

    # 日志配置
    log_level: str = "INFO"
    log_format: str = "%(asctime)s %(levelname)s %(name)s: %(message)s"

    # API配置
    api_title: str = "食堂管理 API"
    api_version: str = "1.0.0"
    api_prefix: str = "/api"
    cors_origins: List[str] = ["*"]

    # 开发模式
    debug: bool = False

    class Config:
        env_file = ".env"
        case_sensitive = False

# 全局设置实例
settings = Settings()
