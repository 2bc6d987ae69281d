import json
from pathlib import Path
from typing import Optional

from distributor.errors import BadConfigException
from distributor.models import MOCK_PRESETS, Config, MockConfig


def load_conf(config_path: str) -> Config:
    """Loads an existing run config from a JSON file"""
    return Config.model_validate_json(Path(config_path).read_text())


def write_conf(conf: Config, config_path: str) -> None:
    Path(config_path).parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w+") as j:
        j.write(json.dumps(conf.model_dump(mode="json"), indent=4))


def with_mock(conf: Config, preset: Optional[str] = None, user_count: Optional[int] = None) -> Config:
    """
    Returns a copy of the config that reads from the mock indexer.
    `preset` picks one of the MOCK_PRESETS, `user_count` overrides the number of users per incentive
    """
    if preset is not None and preset not in MOCK_PRESETS:
        raise BadConfigException(
            f"Unknown mock preset '{preset}'. Available: {', '.join(MOCK_PRESETS)}"
        )

    mock = MOCK_PRESETS[preset] if preset else conf.mock
    settings = {**mock.model_dump(), "enabled": True}
    if user_count is not None:
        settings["user_count"] = user_count

    return conf.model_copy(update={"mock": MockConfig.model_validate(settings)})
