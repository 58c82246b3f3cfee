from pathlib import Path
from typing import Optional, Type, TypeVar

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel

from dockyard.config.schema import DockyardConfig
from dockyard.constants import PROJECT_CONFIG_REL
from dockyard.logging_config import get_logger
from dockyard.utils import expand_env_vars

logger = get_logger(__name__)

T = TypeVar("T", bound=BaseModel)


def _warn_unknown_keys(model: BaseModel, path: str, config_path: Path) -> None:
    """Recursively warn about unknown keys in a model and its nested models."""
    if model.model_extra:
        logger.warning("Unknown keys in %s at %s: %s", path, config_path, list(model.model_extra.keys()))

    for field_name, field_value in model.__dict__.items():
        if isinstance(field_value, BaseModel):
            _warn_unknown_keys(field_value, f"{path}.{field_name}", config_path)


def load_config(path: Path, model_class: Type[T] = DockyardConfig) -> T:  # type: ignore[assignment]
    """Load and validate configuration from a YAML file.

    Args:
        path: Path to the config.yml file.
        model_class: The Pydantic model class to use for validation.

    Returns:
        The validated configuration model. A missing or unreadable file
        yields the defaults; invalid values raise pydantic.ValidationError.
    """
    if not path.exists():
        return model_class()

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        logger.warning("Failed to read config file %s: %s", path, e)
        return model_class()

    if not isinstance(raw, dict):
        logger.warning("Config file %s does not contain a mapping; using defaults", path)
        return model_class()

    expanded = expand_env_vars(raw)
    model = model_class.model_validate(expanded)
    _warn_unknown_keys(model, "root", path)
    return model


def load_project_config(project_root: Path, path: Optional[Path] = None) -> DockyardConfig:
    """Load `<project_root>/.dockyard/config.yml`.

    A `.env` file in the project root is loaded first (without overriding the
    environment) so `${VAR}` references can point at project-local values.
    """
    env_file = project_root / ".env"
    if env_file.exists():
        load_dotenv(env_file, override=False)
    return load_config(path or project_root / PROJECT_CONFIG_REL, DockyardConfig)
