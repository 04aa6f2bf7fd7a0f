import os
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, ValidationError
from pydantic_settings import BaseSettings

DEFAULT_DATA_DIR = Path.home() / ".skillgraph"


class Settings(BaseSettings):
    remote_url: str = Field("http://127.0.0.1:5000/api", alias="SKILLGRAPH_REMOTE_URL")
    remote_timeout: float = Field(10.0, gt=0, alias="SKILLGRAPH_REMOTE_TIMEOUT")
    persistence_mode: Literal["remote", "local", "hybrid"] = Field(
        "hybrid",
        alias="SKILLGRAPH_PERSISTENCE_MODE",
    )
    data_dir: Path = Field(DEFAULT_DATA_DIR, alias="SKILLGRAPH_DATA_DIR")
    database_url: str = Field("sqlite:///./skillgraph.db", alias="SKILLGRAPH_DATABASE_URL")
    database_echo: bool = Field(False, alias="SKILLGRAPH_DATABASE_ECHO")
    openai_api_key: Optional[str] = Field(None, alias="OPENAI_API_KEY")
    reasoning_model: str = Field("gpt-4o-mini", alias="SKILLGRAPH_REASONING_MODEL")

    class Config:
        env_file = os.getenv("ENV_FILE", ".env")
        env_file_encoding = "utf-8"
        case_sensitive = True

    @property
    def local_store_path(self) -> Path:
        return self.data_dir.expanduser() / "skillgraph_offline_db.json"

    @property
    def identity_slot_path(self) -> Path:
        return self.data_dir.expanduser() / "skillgraph_user.json"


@lru_cache
def get_settings() -> Settings:
    try:
        settings = Settings()  # type: ignore[arg-type]
        if settings.openai_api_key and not os.getenv("OPENAI_API_KEY"):
            os.environ["OPENAI_API_KEY"] = settings.openai_api_key
        return settings
    except ValidationError as exc:
        raise RuntimeError(f"Invalid SkillGraph configuration: {exc}") from exc
