import json
import logging
import os
from typing import Dict, Optional

from pydantic import ValidationError

from .schemas import BotConfig

logger = logging.getLogger("subbot.config_store")


class ConfigError(Exception):
    pass


class ConfigStore:
    """config.json holder with atomic writes.

    The file is read once at startup; after each export the exported
    channels' base_id is moved forward and the whole file is rewritten.
    """

    def __init__(self, path: str):
        self.path = path
        self._config: Optional[BotConfig] = None

    @property
    def config(self) -> BotConfig:
        if self._config is None:
            return self.load()
        return self._config

    def load(self) -> BotConfig:
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                raw = json.load(f)
        except FileNotFoundError as e:
            raise ConfigError(f"Config file not found: {self.path}") from e
        except json.JSONDecodeError as e:
            raise ConfigError(f"Config file is not valid JSON: {self.path}: {e}") from e

        try:
            cfg = BotConfig.model_validate(raw)
        except ValidationError as e:
            raise ConfigError(f"Invalid config {self.path}: {e}") from e

        self._config = cfg
        return cfg

    def save(self, cfg: BotConfig) -> None:
        data = cfg.model_dump(mode="json", exclude_none=True)
        # Blank channel ids load as None; write them back as they were given.
        for key in ("log_channel", "rejudge_channel"):
            if key in cfg.model_fields_set:
                data.setdefault(key, "")

        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        tmp_path = self.path + ".tmp"
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(data, f, ensure_ascii=False, indent=4)
        os.replace(tmp_path, self.path)
        self._config = cfg

    def update_baselines(self, last_ids: Dict[str, int]) -> BotConfig:
        """Set base_id of the given channels and rewrite the file."""
        cfg = self.config
        channels = []
        for ch in cfg.submit_channels:
            if ch.id in last_ids:
                ch = ch.model_copy(update={"base_id": int(last_ids[ch.id])})
            channels.append(ch)
        new_cfg = cfg.model_copy(update={"submit_channels": channels})
        self.save(new_cfg)
        logger.info("Persisted baselines: %s", ", ".join(f"{k}=#{v}" for k, v in sorted(last_ids.items())))
        return new_cfg
