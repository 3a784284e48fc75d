"""Editor configuration.

Priority: LINE_EDITOR_* environment variables > defaults.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

ENV_PREFIX = "LINE_EDITOR_"


class EditorConfig(BaseModel):
    """Limits and locations used by every editor component."""

    # Audit log location and the number of entries it retains
    log_file: Path = Path("editorback.log")
    log_buffer: int = Field(default=200, ge=10)

    # Argument limits
    max_string_length: int = Field(default=1024, gt=0)
    max_path_length: int = Field(default=256, gt=0)

    # Longest line (bytes, newline included) accepted by line-buffered reads
    max_line_length: int = Field(default=1024, gt=0)
    max_log_line_length: int = Field(default=2560, gt=0)

    encoding: str = "utf-8"
    chunk_size: int = Field(default=8192, gt=0)
    lock_timeout: float = 30
    pattern_ignore_case: bool = True
    log_level: str = "WARNING"

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> EditorConfig:
        """Build a config, overriding defaults from the environment."""
        if environ is None:
            environ = os.environ

        overrides = {}
        for name in cls.model_fields:
            value = environ.get(f"{ENV_PREFIX}{name.upper()}")
            if value is not None:
                overrides[name] = value

        return cls(**overrides)
