import json
from pathlib import Path

import pytest

from src.config_store import ConfigStore
from src.schemas import BotConfig
from src.service import SubmissionService

BALKANS = "100"
UK = "200"


def config_dict(base_balkans: int = 0, base_uk: int = 424) -> dict:
    return {
        "submit_channels": [
            {
                "id": BALKANS,
                "bounds": {"lat": {"min": 40, "max": 50}, "lng": {"min": -10, "max": 10}},
                "base_id": base_balkans,
                "static_base_id": base_balkans,
                "sheet": "Balkans",
            },
            {
                "id": UK,
                "bounds": {"lat": {"min": 50, "max": 53}, "lng": {"min": -4, "max": 0}},
                "base_id": base_uk,
                "sheet": "United Kingdom",
            },
        ],
        "log_channel": "900",
        "spreadsheet_id": "sheet-123",
        "current_round": 3,
    }


@pytest.fixture
def config() -> BotConfig:
    return BotConfig.model_validate(config_dict())


@pytest.fixture
def service(config: BotConfig) -> SubmissionService:
    svc = SubmissionService(config)
    svc.set_team_name(BALKANS, "balkans")
    svc.set_team_name(UK, "uk")
    return svc


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    p = tmp_path / "config.json"
    p.write_text(json.dumps(config_dict(), indent=4), encoding="utf-8")
    return p


@pytest.fixture
def store(config_path: Path) -> ConfigStore:
    s = ConfigStore(str(config_path))
    s.load()
    return s
