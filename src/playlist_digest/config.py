import os
import yaml
from pathlib import Path
from typing import Dict, Any, Union

from pydantic import ValidationError

from .exceptions import ConfigError
from .models import DigestConfig

DEFAULT_CONFIG_PATH = Path("config/default.yaml")
LOCAL_CONFIG_PATH = Path("config/local.yaml")

YOUTUBE_API_KEY_ENV = "YOUTUBE_API_KEY"
GEMINI_API_KEY_ENV = "GEMINI_API_KEY"


def get_config_value(config: Union[DigestConfig, Dict], path: str, default=None):
    """
    Safely get a config value from either Pydantic model or dict.

    Args:
        config: DigestConfig model or dict
        path: Dot-separated path like "run.concurrency"
        default: Default value if not found

    Returns:
        The config value or default
    """
    if isinstance(config, DigestConfig):
        config = config.model_dump()

    keys = path.split(".")
    value = config
    for key in keys:
        if isinstance(value, dict) and key in value:
            value = value[key]
        else:
            return default
    return value


def load_yaml(path: Path) -> Dict[str, Any]:
    """Load YAML file, returning empty dict if not found."""
    if not path.exists():
        return {}
    with open(path, "r") as f:
        return yaml.safe_load(f) or {}


def merge_dicts(base: Dict, override: Dict) -> Dict:
    """Recursive merge of two dictionaries."""
    result = base.copy()
    for k, v in override.items():
        if k in result and isinstance(result[k], dict) and isinstance(v, dict):
            result[k] = merge_dicts(result[k], v)
        else:
            result[k] = v
    return result


def resolve_config(cli_args: Dict[str, Any] = None) -> DigestConfig:
    """
    Resolve config: Default < Local < CLI
    Returns validated Pydantic DigestConfig model.

    Raises:
        ConfigError: If the merged configuration does not validate
    """
    cli_args = cli_args or {}

    config_data = load_yaml(DEFAULT_CONFIG_PATH)

    local_data = load_yaml(LOCAL_CONFIG_PATH)
    config_data = merge_dicts(config_data, local_data)

    try:
        config = DigestConfig.from_dict(config_data)
        return config.merge_cli_overrides(cli_args)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def require_env(name: str) -> str:
    """Read a required secret from the environment.

    Raises:
        ConfigError: If the variable is unset or empty
    """
    value = os.getenv(name)
    if not value:
        raise ConfigError(
            f"{name} environment variable is not set.",
            suggestion=f"export {name}=...",
        )
    return value
