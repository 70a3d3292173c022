# src/credfeed/core/config.py

import logging
import os
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from pydantic import BaseModel, Field, SecretStr, ValidationError, field_validator

from credfeed.exceptions import ConfigError
from credfeed.model.schema import FeedOrder

logger = logging.getLogger(__name__)


class StoreBackend(str, Enum):
    MEMORY = "memory"
    NEO4J = "neo4j"


class StoreConfig(BaseModel):
    backend: StoreBackend = StoreBackend.MEMORY


class Neo4jConfig(BaseModel):
    uri: str = "bolt://localhost:7687"
    username: str = "neo4j"
    password: SecretStr = Field(default=SecretStr(""))
    database: str = "neo4j"


class ScoringConfig(BaseModel):
    max_initial: float = Field(default=5.0, gt=0)
    high_threshold: float = 3.5


class FeedConfig(BaseModel):
    order: FeedOrder = FeedOrder.RECENCY


class AppConfig(BaseModel):
    """
    Main configuration model for credfeed.
    """

    store: StoreConfig = Field(default_factory=StoreConfig)
    neo4j: Neo4jConfig = Field(default_factory=Neo4jConfig)
    scoring: ScoringConfig = Field(default_factory=ScoringConfig)
    feed: FeedConfig = Field(default_factory=FeedConfig)

    @field_validator("store", mode="before")
    @classmethod
    def load_store_from_env(cls, v: Any) -> Any:
        if not isinstance(v, dict):
            v = {}
        if "CREDFEED_STORE_BACKEND" in os.environ:
            v["backend"] = os.environ["CREDFEED_STORE_BACKEND"].lower()
        return v

    @field_validator("neo4j", mode="before")
    @classmethod
    def load_neo4j_from_env(cls, v: Any) -> Any:
        """Override Neo4j settings with environment variables if present."""
        if not isinstance(v, dict):
            v = {}
        if "NEO4J_URI" in os.environ:
            v["uri"] = os.environ["NEO4J_URI"]
        if "NEO4J_USERNAME" in os.environ:
            v["username"] = os.environ["NEO4J_USERNAME"]
        if "NEO4J_PASSWORD" in os.environ:
            v["password"] = os.environ["NEO4J_PASSWORD"]
        if "NEO4J_DATABASE" in os.environ:
            v["database"] = os.environ["NEO4J_DATABASE"]
        return v


def load_config(config_path: Optional[Union[str, Path]] = None) -> AppConfig:
    """
    Load credfeed configuration from YAML file.

    Args:
        config_path: Path to config.yaml (default: ./config/config.yaml)

    Returns:
        Validated AppConfig instance.

    Raises:
        ConfigError: If the file holds values that fail validation
    """
    if config_path is None:
        config_path = Path("config") / "config.yaml"
    else:
        config_path = Path(config_path)

    config_data: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as f:
                config_data = yaml.safe_load(f) or {}
            logger.info(f"Loaded configuration from {config_path}")
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Failed to load config file {config_path}: {e}")
    else:
        logger.info(f"Config file not found at {config_path}, using defaults")

    # Validators run for every section so env vars apply even without a file
    config_data.setdefault("store", {})
    config_data.setdefault("neo4j", {})

    try:
        config = AppConfig(**config_data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}", {"errors": e.errors()}) from e

    logger.debug("credfeed configuration loaded with settings:")
    logger.debug(f"  Store backend: {config.store.backend.value}")
    logger.debug(f"  Neo4j URI: {config.neo4j.uri}")
    logger.debug(
        f"  Scoring: max={config.scoring.max_initial}, high>={config.scoring.high_threshold}"
    )
    logger.debug(f"  Feed order: {config.feed.order.value}")

    return config
