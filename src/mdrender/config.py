"""Application configuration: settings schema and config.yaml loader"""

import os
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field


CONFIG_FILE = "config.yaml"
ENV_PREFIX  = "MDRENDER_"


class Settings(BaseModel):
    app_name:         str = "mdrender"
    parser_config:    str = Field(default="gfm-like", description="MarkdownIt parser preset name")
    tasklists:        bool = Field(default=True,  description="Recognize [ ] / [x] task list items")
    honor_list_start: bool = Field(default=True,  description="Number ordered lists from their start value")
    output_dir:       str = Field(default="dist", description="Directory for rendered JSON files")
    fetch_images:     bool = Field(default=False, description="Resolve image sizes over HTTP while rendering")
    image_base_url:   Optional[str] = Field(default=None, description="Base URL for relative image sources")
    fetch_timeout:    float = Field(default=30.0, gt=0, description="Image fetch timeout in seconds")
    max_image_bytes:  int = Field(default=20 * 1024 * 1024, gt=0, description="Max downloaded image size")
    max_image_width:  int = Field(default=600, gt=0, description="Display width bound for images")
    max_image_height: int = Field(default=400, gt=0, description="Display height bound for images")
    log_level:        str = Field(
        default="WARNING",
        pattern="^(TRACE|DEBUG|INFO|SUCCESS|WARNING|ERROR|CRITICAL)$",
        description="loguru level for the stderr sink",
    )


def load_config(overrides: dict[str, Any] = None) -> Settings:
    """Load Settings from config.yaml, then MDRENDER_<FIELD> env vars, then non-None CLI overrides."""
    data: dict[str, Any] = {}
    if Path(CONFIG_FILE).exists():
        try:
            data = yaml.safe_load(Path(CONFIG_FILE).read_text()) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid {CONFIG_FILE}: {e}") from e
        if not isinstance(data, dict):
            raise ValueError(f"Invalid {CONFIG_FILE}: expected a mapping, got {type(data).__name__}")

    for name in Settings.model_fields:
        if val := os.getenv(f"{ENV_PREFIX}{name.upper()}"):
            data[name] = val

    if overrides:
        data.update({k: v for k, v in overrides.items() if v is not None})
    return Settings(**data)
