from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="RH_", env_file=".env", extra="ignore")

    HISTORY_DIR: str = Field(default="test-history")
    REPORT_DIR: str = Field(default="playwright-report")
    INDEX_LIMIT: int = Field(default=100, ge=1)

    # 与 UI 测试套件共用的环境变量（ENVIRONMENT=qa1 npx/pytest ...）
    ENVIRONMENT: str = Field(
        default="qa1",
        validation_alias=AliasChoices("RH_ENVIRONMENT", "ENVIRONMENT"),
    )
    PROJECT: str = Field(
        default="QA",
        validation_alias=AliasChoices("RH_PROJECT", "PROJECT"),
    )

    LOG_LEVEL: str = Field(default="INFO")
    LOG_FILE: str | None = Field(default=None)


def get_settings() -> Settings:
    """每次读取最新环境变量"""
    return Settings()
