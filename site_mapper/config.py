# === FILE: site_mapper/config.py ===
"""
Loading and validation of the SiteMapper configuration.
Pydantic describes the schema; YAML and JSON files are accepted.
"""
from __future__ import annotations

import errno
import json
import os
from pathlib import Path
from typing import Any, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from site_mapper.utils import DEFAULT_SOCIAL_DOMAINS


class MapperConfig(BaseModel):
    """Settings for one sitemap generation."""
    model_config = ConfigDict(extra="forbid", frozen=True)

    max_depth: int = Field(2, ge=1, le=5, description="Crawl levels, the homepage included.")
    max_links_per_page: int = Field(5, ge=1, le=20, description="Links followed from a single page.")
    fetch_timeout: float = Field(15.0, gt=0, description="Timeout for one page fetch (seconds).")
    budget: float = Field(60.0, gt=0, description="Wall-clock budget for the whole request (seconds).")
    synthesis_reserve: float = Field(20.0, ge=0, description="Part of the budget kept for synthesis.")
    user_agent: str = Field("SiteMapperBot/1.0", min_length=1, description="User-Agent header.")
    retry_times: int = Field(1, ge=0, description="Retries on 5xx/429.")

    fetch_mode: Literal["html", "reader"] = Field("html", description="Direct HTML fetch or reader service.")
    reader_url: str = Field("https://r.jina.ai/", description="Reader service endpoint.")
    reader_api_key: Optional[str] = Field(
        default_factory=lambda: os.getenv("JINA_API_KEY"), description="Bearer key of the reader service."
    )

    llm_model: str = Field("gpt-4o", min_length=1)
    llm_temperature: float = Field(0.7, ge=0, le=2)
    llm_timeout: float = Field(30.0, gt=0)
    llm_base_url: Optional[str] = Field(default_factory=lambda: os.getenv("LLM_BASE_URL"))
    llm_api_key: Optional[str] = Field(
        default_factory=lambda: os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY")
    )

    social_domains: tuple[str, ...] = Field(DEFAULT_SOCIAL_DOMAINS, description="Never followed.")

    @field_validator("social_domains", mode="before")
    def _lower_domains(cls, v: Any) -> Any:
        if isinstance(v, (list, tuple)):
            return tuple(str(d).strip().lower() for d in v if str(d).strip())
        return v

    @model_validator(mode="after")
    def _check_reserve(self) -> MapperConfig:
        if self.synthesis_reserve >= self.budget:
            raise ValueError("synthesis_reserve must be smaller than budget")
        return self

    def public_dict(self) -> dict[str, Any]:
        """Configuration without secrets, for display."""
        data = self.model_dump(mode="json")
        for key in ("reader_api_key", "llm_api_key"):
            if data.get(key):
                data[key] = "***"
        return data


_DEFAULT_CFG = Path("configs/default.yaml")


def _read_yaml(path: Path) -> dict[str, Any]:
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise ValueError(f"Invalid YAML in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of YAML must be a mapping, got {type(data).__name__}")
    return data


def _read_json(path: Path) -> dict[str, Any]:
    try:
        data = json.loads(path.read_text(encoding="utf-8")) or {}
    except json.JSONDecodeError as exc:
        raise ValueError(f"Invalid JSON in {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise TypeError(f"Top level of JSON must be a mapping, got {type(data).__name__}")
    return data


def load_config(path: Union[str, Path, None]) -> MapperConfig:
    """
    Read YAML or JSON and return a validated MapperConfig.
    Without *path*, ``configs/default.yaml`` is used when present, defaults otherwise.
    """
    if path is None:
        if not _DEFAULT_CFG.exists():
            return MapperConfig()
        path_obj = _DEFAULT_CFG
    else:
        path_obj = Path(path).expanduser().resolve()
        if not path_obj.is_file():
            raise FileNotFoundError(errno.ENOENT, os.strerror(errno.ENOENT), str(path_obj))

    suffix = path_obj.suffix.lower()
    if suffix in (".yaml", ".yml"):
        data = _read_yaml(path_obj)
    elif suffix == ".json":
        data = _read_json(path_obj)
    else:
        raise ValueError(f"Unsupported config format: {suffix}")

    return MapperConfig(**data)
