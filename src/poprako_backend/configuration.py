from __future__ import annotations

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv
from omegaconf import DictConfig, OmegaConf

# Load environment variables from .env file
load_dotenv()

_HERE = Path(__file__).resolve()
_CANDIDATE_CONFIG_PATHS = [parent / "config/config.yaml" for parent in _HERE.parents[:5]]

DEFAULTS: Dict[str, Any] = {
    "database_path": "data/poprako.db",
    "export_dir": "exports",
    "max_exports": 30,
    "export_generator": "Exported by PopRaKo Web",
    "export_base_uri": "/comics/export/",
}

# Environment variable -> config key
ENV_OVERRIDES = {
    "POPRAKO_DB_PATH": "database_path",
    "POPRAKO_EXPORT_DIR": "export_dir",
    "POPRAKO_MAX_EXPORTS": "max_exports",
}


def _find_config_file() -> Optional[Path]:
    explicit = os.environ.get("POPRAKO_CONFIG")
    if explicit:
        path = Path(explicit).expanduser()
        if not path.exists():
            raise FileNotFoundError(f"Config file not found at {path}")
        return path
    return next((path for path in _CANDIDATE_CONFIG_PATHS if path.exists()), None)


def _env_overrides() -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    for env_name, key in ENV_OVERRIDES.items():
        value = os.environ.get(env_name)
        if value:
            overrides[key] = int(value) if key == "max_exports" else value
    return overrides


def make_config(overrides: Optional[Dict[str, Any]] = None) -> DictConfig:
    """
    Build the runtime configuration.

    Precedence, lowest first: built-in defaults, config.yaml, environment
    variables, explicit overrides.
    """
    base = OmegaConf.create(DEFAULTS)
    OmegaConf.set_struct(base, True)

    layers = []
    config_path = _find_config_file()
    if config_path is not None:
        layers.append(OmegaConf.load(config_path))
    layers.append(OmegaConf.create(_env_overrides()))
    if overrides:
        layers.append(OmegaConf.create(overrides))

    return DictConfig(OmegaConf.merge(base, *layers))


@lru_cache(maxsize=1)
def get_config() -> DictConfig:
    return make_config()
