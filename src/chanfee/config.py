"""
Configuration management using pydantic-settings.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from chanfee.constants import DEFAULT_MAX_CONVERGENCE_ROUNDS, STANDARD_DUST_LIMIT
from chanfee.models import ScriptType


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False
    )

    mempool_api_url: str = "https://mempool.space/api"
    request_timeout: float = Field(default=30.0, gt=0)

    dust_threshold: int = Field(default=STANDARD_DUST_LIMIT, ge=0)
    max_convergence_rounds: int = Field(default=DEFAULT_MAX_CONVERGENCE_ROUNDS, ge=1, le=100)
    change_script_type: ScriptType = ScriptType.P2TR
    min_confirmations: int = Field(default=0, ge=0)

    log_level: str = "INFO"


def get_settings() -> Settings:
    return Settings()
