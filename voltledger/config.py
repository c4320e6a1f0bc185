"""
VoltLedger configuration.

Sources, lowest to highest precedence:
    1. Field defaults
    2. Values passed in  - keyword arguments, from_dict(), from_yaml(path)
    3. Environment       - VOLTLEDGER_OWNER, VOLTLEDGER_JOURNAL, VOLTLEDGER_FSYNC

An empty VOLTLEDGER_JOURNAL means "no journal" (in-memory ledger).

Example voltledger.yaml:

    owner: "0x4f1c..."
    journal_path: data/ledger.jsonl
    fsync: true
"""

from pathlib import Path
from typing import Any, Mapping, Optional

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from voltledger.core.exceptions import ConfigError
from voltledger.core.ledger import ReadingLedger


class LedgerConfig(BaseSettings):
    """Settings needed to open a ReadingLedger."""

    model_config = SettingsConfigDict(
        env_prefix="VOLTLEDGER_",
        case_sensitive=False,
        extra="forbid",
    )

    owner:        str            = Field(min_length=1)
    journal_path: Optional[Path] = None
    fsync:        bool           = False

    @field_validator("journal_path", mode="before")
    @classmethod
    def _blank_journal_is_none(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls,
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        return (env_settings, init_settings)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LedgerConfig":
        """
        Validate and build a config from a plain mapping.
        Raises ConfigError on missing owner, unknown keys or wrong types.
        """
        if not isinstance(data, Mapping):
            raise ConfigError(
                f"Config must be a mapping, got {type(data).__name__}"
            )
        try:
            return cls(**data)
        except ValidationError as exc:
            raise ConfigError(
                "Invalid ledger config",
                {"errors": [
                    f"{'.'.join(str(p) for p in err['loc']) or '<root>'}: {err['msg']}"
                    for err in exc.errors()
                ]},
            ) from exc

    @classmethod
    def from_yaml(cls, path: Path) -> "LedgerConfig":
        """
        Load config from a YAML file.
        Raises ConfigError if the file is missing or not valid YAML.
        """
        path = Path(path)
        if not path.exists():
            raise ConfigError("Config file not found", {"path": str(path)})
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(
                f"Invalid YAML in config: {exc}", {"path": str(path)}
            ) from exc
        return cls.from_dict(data)

    @classmethod
    def from_env(cls, base: Optional["LedgerConfig"] = None) -> "LedgerConfig":
        """Re-read the environment on top of base (or on nothing)."""
        data = base.model_dump() if base is not None else {}
        return cls.from_dict(data)

    def open_ledger(self) -> ReadingLedger:
        """Open (or create) the ledger this config describes."""
        return ReadingLedger.open(
            owner=        self.owner,
            journal_path= self.journal_path,
            fsync=        self.fsync,
        )
