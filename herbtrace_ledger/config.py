from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_RULES_PATH = Path(__file__).with_name("rules.yaml")


class LedgerSettings(BaseSettings):
    # Proof-of-work: number of leading "0" characters a block digest needs
    difficulty: int = Field(default=2, ge=0, le=8)

    # Rule tables (None -> packaged rules.yaml)
    rules_path: Optional[Path] = None

    # Identity recorded on the genesis block and used as default sealer
    authority_id: str = "herbtrace-authority-v1"

    # How many nonces between checks of a seal's cancel event
    cancel_check_interval: int = Field(default=1000, ge=1)

    # Logging
    log_level: str = "INFO"

    model_config = SettingsConfigDict(
        env_prefix="HERBTRACE_",
        env_file=".env",
        extra="ignore",
    )

    def resolved_rules_path(self) -> Path:
        return self.rules_path or DEFAULT_RULES_PATH


settings = LedgerSettings()
