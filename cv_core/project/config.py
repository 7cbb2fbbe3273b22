from __future__ import annotations

from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from cv_core.constants import (
    BATCH_PAGE_SIZE,
    DEFAULT_ACTOR,
    DEFAULT_LANGUAGE,
    MAX_BATCHES,
    STORE_ROW_CAP,
)
from cv_core.i18n.locale import normalize_locale


class EngineConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    workspace_name: str = "content"
    default_language: str = DEFAULT_LANGUAGE
    enabled_locales: list[str] = Field(default_factory=list)
    page_size: int = Field(default=BATCH_PAGE_SIZE, ge=1)
    max_batches: int = Field(default=MAX_BATCHES, ge=1)
    store_row_cap: int = Field(default=STORE_ROW_CAP, ge=1)
    default_actor: str = DEFAULT_ACTOR

    @field_validator("default_language")
    @classmethod
    def _normalize_default_language(cls, value: str) -> str:
        return normalize_locale(value)

    @field_validator("enabled_locales")
    @classmethod
    def _normalize_enabled_locales(cls, values: list[str]) -> list[str]:
        output: list[str] = []
        for value in values:
            locale = normalize_locale(value)
            if locale not in output:
                output.append(locale)
        return output

    @model_validator(mode="after")
    def _page_fits_store_cap(self) -> EngineConfig:
        # A page larger than the cap would come back short and end pagination early.
        if self.page_size > self.store_row_cap:
            raise ValueError("page_size must not exceed store_row_cap")
        return self


def write_config(config_path: Path, config: EngineConfig) -> None:
    config_path.parent.mkdir(parents=True, exist_ok=True)
    with config_path.open("w", encoding="utf-8") as handle:
        yaml.safe_dump(config.model_dump(mode="python"), handle, sort_keys=False)


def read_config(config_path: Path) -> EngineConfig:
    with config_path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle) or {}
    return EngineConfig.model_validate(content)
