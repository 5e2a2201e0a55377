"""Configuration management for the matching form using Hydra.

All configuration is loaded from YAML files in conf/ses_matching/.
This module provides typed config objects and validation.
"""

import os
from pathlib import Path
from typing import Any, cast

import yaml
from hydra import compose, initialize_config_dir
from omegaconf import DictConfig, OmegaConf
from pydantic import BaseModel, Field

from ses_matching.embedding import EmbeddingConfig
from ses_matching.index import IndexConfig
from ses_matching.models import Category

REPO_ROOT = Path(__file__).resolve().parents[2]
SECRET_KEYS = ("OPENAI_API_KEY", "PINECONE_API_KEY", "PINECONE_ENVIRONMENT")


class FormConfig(BaseModel):
    """Form behaviour configuration.

    Attributes:
        categories_enabled: Show the category selector and filter on the complement
        default_category: Category preselected in the form
        record_id_scheme: How upserted record ids are generated ("timestamp" or "uuid")
    """

    categories_enabled: bool = True
    default_category: Category = Category.ENGINEER
    record_id_scheme: str = Field(default="timestamp", pattern="^(timestamp|uuid)$")


class AppConfig(BaseModel):
    """Top-level configuration for the matching form.

    Attributes:
        embedding: Embedding model configuration
        index: Vector index configuration
        form: Form behaviour configuration
    """

    embedding: EmbeddingConfig
    index: IndexConfig
    form: FormConfig = Field(default_factory=FormConfig)


def load_config(
    config_name: str = "default",
    config_path: str | Path | None = None,
    overrides: list[str] | None = None,
) -> AppConfig:
    """Load configuration from Hydra YAML files.

    Args:
        config_name: Name of config file (without .yaml extension)
        config_path: Path to config directory (defaults to conf/ses_matching/)
        overrides: List of config overrides (e.g., ["index.backend=memory"])

    Returns:
        Validated configuration object

    Example:
        >>> config = load_config("default")
        >>> config.index.index_name
        'ses-matching-test'

        >>> config = load_config("default", overrides=["form.categories_enabled=false"])
        >>> config.form.categories_enabled
        False
    """
    if config_path is None:
        config_path = REPO_ROOT / "conf" / "ses_matching"

    config_path = Path(config_path).resolve()

    if not config_path.exists():
        raise FileNotFoundError(
            f"Config directory not found: {config_path}\n" f"Create it with: mkdir -p {config_path}"
        )

    with initialize_config_dir(
        config_dir=str(config_path), version_base=None, job_name="ses_matching"
    ):
        cfg: DictConfig = compose(config_name=config_name, overrides=overrides or [])

    config_dict = OmegaConf.to_container(cfg, resolve=True)
    return AppConfig(**cast(dict[str, Any], config_dict))


def load_secrets_into_env(path: str | Path | None = None) -> list[str]:
    """Copy API keys from a YAML secrets file into the environment.

    Only variables that are currently unset are written, so exported values
    always win. A missing file is not an error: credentials then come from the
    environment alone, or stay empty.

    Args:
        path: Secrets file (defaults to conf/secrets.yml)

    Returns:
        Names of the variables that were set
    """
    secrets_path = Path(path) if path is not None else REPO_ROOT / "conf" / "secrets.yml"
    if not secrets_path.exists():
        return []

    data = yaml.safe_load(secrets_path.read_text()) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Secrets file must contain a mapping: {secrets_path}")

    loaded = []
    for key in SECRET_KEYS:
        if os.environ.get(key):
            continue
        value = data.get(key)
        if value:
            os.environ[key] = str(value)
            loaded.append(key)
    return loaded
