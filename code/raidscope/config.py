from functools import lru_cache

from pydantic import BaseModel, SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class WCLConfig(BaseModel):
    api_url: str = "https://www.warcraftlogs.com/api/v2/client"
    token: SecretStr = SecretStr("")  # opaque bearer token, forwarded as-is
    timeout: float = 30.0


class DatabaseConfig(BaseModel):
    url: str = "sqlite+aiosqlite:///raidscope.db"
    echo: bool = False


class AnalysisConfig(BaseModel):
    target_zone: str = "Liberation of Undermine"
    wipefest_enabled: bool = False


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
    )

    debug: bool = False
    log_level: str = "INFO"
    wcl: WCLConfig = WCLConfig()
    db: DatabaseConfig = DatabaseConfig()
    analysis: AnalysisConfig = AnalysisConfig()

    @model_validator(mode="after")
    def _check_cross_field_deps(self):
        if not self.analysis.target_zone.strip():
            raise ValueError("ANALYSIS__TARGET_ZONE must not be blank")
        return self


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
