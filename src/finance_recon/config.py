"""Configuration loader and validation for reconciliation settings."""

from pathlib import Path
from typing import Any, Literal, Optional
import logging

import yaml
from pydantic import BaseModel, Field, ValidationError

from .utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ExactMatchWeights(BaseModel):
    """Signal weights for the exact match score."""

    amount: float = 0.40
    date: float = 0.30
    description: float = 0.20
    reference: float = 0.10


class FuzzyMatchWeights(BaseModel):
    """Signal weights for the fuzzy match score."""

    amount: float = 0.35
    date: float = 0.25
    description: float = 0.20
    merchant: float = 0.15
    type: float = 0.05


class MatchingConfig(BaseModel):
    """Thresholds and tolerances for the exact and fuzzy passes."""

    exact_threshold: float = Field(0.95, ge=0.0, le=1.0)
    fuzzy_threshold: float = Field(0.70, ge=0.0, le=1.0)
    fuzzy_accept_threshold: float = Field(0.85, ge=0.0, le=1.0)
    exact_weights: ExactMatchWeights = Field(default_factory=ExactMatchWeights)
    fuzzy_weights: FuzzyMatchWeights = Field(default_factory=FuzzyMatchWeights)
    amount_epsilon: float = 0.01
    exact_date_tolerance_days: float = 1.0
    exact_description_similarity: float = 0.80
    fuzzy_amount_tolerance_percent: float = 2.0
    fuzzy_amount_tolerance_min: float = 1.0
    fuzzy_date_tolerance_days: float = 3.0
    fuzzy_description_similarity: float = 0.50
    fuzzy_merchant_similarity: float = 0.70


class DuplicateConfig(BaseModel):
    """Settings for duplicate detection."""

    similarity_threshold: float = 0.90
    date_window_seconds: float = 60.0
    exact_group_confidence: float = 0.95
    potential_match_ceiling: float = 0.80
    amount_weight: float = 0.40
    date_weight: float = 0.30
    description_weight: float = 0.30


class ConflictConfig(BaseModel):
    """Settings for field-level conflict detection."""

    amount_tolerance: float = 0.01
    date_tolerance_days: float = 1.0
    amount_confidence: float = 0.9
    date_confidence: float = 0.8
    category_confidence: float = 0.6


class CategorizationConfig(BaseModel):
    """Settings for auto-categorizing unmatched bank transactions."""

    enabled: bool = True
    min_confidence: float = Field(0.7, ge=0.0, le=1.0)
    timeout_seconds: float = Field(5.0, gt=0.0)


class StorageConfig(BaseModel):
    """Durable store location and collection keys."""

    path: str = "reconciliation_state.json"
    matches_key: str = "reconciliation_matches"
    conflicts_key: str = "reconciliation_conflicts"
    duplicates_key: str = "reconciliation_duplicates"


class InputConfig(BaseModel):
    """Configuration for transaction file parsing."""

    encoding: str = "utf-8"
    delimiter: str = ","
    date_format: Optional[str] = None
    # None infers the decimal separator from each amount
    decimal_separator: Optional[Literal[".", ","]] = None
    thousands_separator: Optional[Literal[".", ","]] = None
    column_mappings: dict[str, str] = Field(
        default_factory=lambda: {
            "id": "id",
            "account_id": "account_id",
            "amount": "amount",
            "description": "description",
            "date": "date",
            "type": "type",
            "currency": "currency",
            "merchant_name": "merchant_name",
            "category": "category",
            "reference": "reference",
            "status": "status",
        }
    )


class LoggingConfig(BaseModel):
    """Configuration for logging."""

    level: str = "INFO"
    format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    file: Optional[str] = None


class ReconConfig(BaseModel):
    """Main configuration model for reconciliation."""

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    duplicates: DuplicateConfig = Field(default_factory=DuplicateConfig)
    conflicts: ConflictConfig = Field(default_factory=ConflictConfig)
    categorization: CategorizationConfig = Field(default_factory=CategorizationConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    input: InputConfig = Field(default_factory=InputConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    config_file_path: Optional[str] = None


def get_default_config() -> dict[str, Any]:
    """Return the default configuration as a dictionary."""
    return {
        "matching": {
            "exact_threshold": 0.95,
            "fuzzy_threshold": 0.70,
            "fuzzy_accept_threshold": 0.85,
            "exact_weights": {
                "amount": 0.40,
                "date": 0.30,
                "description": 0.20,
                "reference": 0.10,
            },
            "fuzzy_weights": {
                "amount": 0.35,
                "date": 0.25,
                "description": 0.20,
                "merchant": 0.15,
                "type": 0.05,
            },
            "amount_epsilon": 0.01,
            "exact_date_tolerance_days": 1.0,
            "exact_description_similarity": 0.80,
            "fuzzy_amount_tolerance_percent": 2.0,
            "fuzzy_amount_tolerance_min": 1.0,
            "fuzzy_date_tolerance_days": 3.0,
            "fuzzy_description_similarity": 0.50,
            "fuzzy_merchant_similarity": 0.70,
        },
        "duplicates": {
            "similarity_threshold": 0.90,
            "date_window_seconds": 60.0,
            "exact_group_confidence": 0.95,
            "potential_match_ceiling": 0.80,
            "amount_weight": 0.40,
            "date_weight": 0.30,
            "description_weight": 0.30,
        },
        "conflicts": {
            "amount_tolerance": 0.01,
            "date_tolerance_days": 1.0,
            "amount_confidence": 0.9,
            "date_confidence": 0.8,
            "category_confidence": 0.6,
        },
        "categorization": {
            "enabled": True,
            "min_confidence": 0.7,
            "timeout_seconds": 5.0,
        },
        "storage": {
            "path": "reconciliation_state.json",
            "matches_key": "reconciliation_matches",
            "conflicts_key": "reconciliation_conflicts",
            "duplicates_key": "reconciliation_duplicates",
        },
        "input": {
            "encoding": "utf-8",
            "delimiter": ",",
            "date_format": None,
            "decimal_separator": None,
            "thousands_separator": None,
            "column_mappings": {
                "id": "id",
                "account_id": "account_id",
                "amount": "amount",
                "description": "description",
                "date": "date",
                "type": "type",
                "currency": "currency",
                "merchant_name": "merchant_name",
                "category": "category",
                "reference": "reference",
                "status": "status",
            },
        },
        "logging": {
            "level": "INFO",
            "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            "file": None,
        },
    }


def load_config(config_path: Optional[Path] = None) -> ReconConfig:
    """
    Load configuration from a YAML file or use defaults.

    Args:
        config_path: Path to YAML configuration file (optional)

    Returns:
        ReconConfig object with loaded or default settings

    Raises:
        ConfigurationError: If the file is not valid YAML or fails validation
    """
    config_dict = get_default_config()

    if config_path and config_path.exists():
        logger.info(f"Loading configuration from: {config_path}")
        try:
            with open(config_path, "r") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {e}") from e

        if not isinstance(user_config, dict):
            raise ConfigurationError(f"Configuration root must be a mapping: {config_path}")

        # Deep merge user config into defaults
        config_dict = _deep_merge(config_dict, user_config)
        config_dict["config_file_path"] = str(config_path)
    else:
        logger.info("Using default configuration")

    try:
        return ReconConfig(**config_dict)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid configuration: {e}") from e


def _deep_merge(base: dict, override: dict) -> dict:
    """
    Deep merge two dictionaries.

    Args:
        base: Base dictionary
        override: Dictionary to merge on top

    Returns:
        Merged dictionary
    """
    result = base.copy()

    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value

    return result


def generate_default_config(output_path: Path) -> None:
    """
    Generate a default configuration file.

    Args:
        output_path: Path to write the configuration file
    """
    config_dict = get_default_config()

    yaml_content = """# Bank transaction reconciliation configuration
# Generated configuration file - customize as needed

"""
    yaml_content += yaml.dump(config_dict, default_flow_style=False, sort_keys=False)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    with open(output_path, "w") as f:
        f.write(yaml_content)

    logger.info(f"Generated configuration file: {output_path}")
