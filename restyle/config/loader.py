from __future__ import annotations

import json
from pathlib import Path

from restyle.config.schema import EngineConfig


class ConfigLoader:
    """Loads and validates the JSON engine configuration."""

    @staticmethod
    def load(path: str | Path) -> EngineConfig:
        config_path = Path(path)
        with config_path.open("r", encoding="utf-8") as handle:
            payload = json.load(handle)
        return EngineConfig.model_validate(payload)
