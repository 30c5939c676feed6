"""Hat service configuration via environment variables."""

from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings


class HatSettings(BaseSettings):
    model_config = {"env_prefix": "HAT_", "env_file": ".env", "extra": "ignore"}

    # "file" persists matches and stats as JSON under data_dir; "memory" keeps them in-process
    storage_backend: Literal["file", "memory"] = "file"
    data_dir: str = Field(default="backend/data", min_length=1)
    session_log_dir: str = Field(default="backend/data/sessions", min_length=1)
    log_dir: str = Field(default="backend/logs/hat", min_length=1)

    # CSV dictionary (word,category,level); required for create_service
    words_file: str = Field(default="backend/data/words.csv", min_length=1)

    # Rounds covered by the per-round leaderboards (indices 0..last_round_index)
    last_round_index: int = Field(default=3, ge=0)
