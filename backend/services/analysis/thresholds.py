"""Alert threshold configuration.

Defaults live on the models; ``load_thresholds`` overlays a YAML file so alert
sensitivity can be tuned without touching rule logic. Missing sections or keys
keep their defaults, unknown keys are rejected.
"""

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, ConfigDict, ValidationError

logger = logging.getLogger(__name__)


class ThresholdConfigError(ValueError):
    """Threshold file exists but cannot be parsed or validated."""


class _Section(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)


class MaternalThresholds(_Section):
    # % body weight loss vs baseline
    body_weight_loss_percent: float = 10
    # % food consumption below control mean
    food_consumption_decrease_percent: float = 20
    # maternal deaths/moribund in a group
    death_count: int = 1
    # % dams with clinical signs in a group
    clinical_sign_incidence_percent: float = 25


class DevelopmentalThresholds(_Section):
    # mean resorptions per litter
    early_resorption_threshold: float = 1.5
    late_resorption_threshold: float = 0.8
    # % decrease in mean fetal weight vs control
    fetal_weight_decrease_percent: float = 10
    # % litters with at least one malformed fetus
    malformation_incidence_percent: float = 5
    # % litters with variations (higher bar, variations are common)
    variation_incidence_percent: float = 15


class PostnatalThresholds(_Section):
    # % pup mortality PND0-4
    perinatal_mortality_percent: float = 10
    # % decrease in pup weight vs control
    pup_weight_gain_decrease_percent: float = 15
    # days of milestone delay vs control
    milestone_delay_days: float = 1.5


class AlertThresholds(_Section):
    maternal: MaternalThresholds = MaternalThresholds()
    developmental: DevelopmentalThresholds = DevelopmentalThresholds()
    postnatal: PostnatalThresholds = PostnatalThresholds()


DEFAULT_THRESHOLDS = AlertThresholds()


def load_thresholds(path: Path | None) -> AlertThresholds:
    """Read thresholds from a YAML file; defaults when the file is absent."""
    if path is None or not path.exists():
        logger.info("No threshold file at %s, using defaults", path)
        return DEFAULT_THRESHOLDS

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ThresholdConfigError(f"Cannot parse threshold file {path}: {e}") from e

    section = data.get("thresholds", data) if isinstance(data, dict) else None
    if not isinstance(section, dict):
        raise ThresholdConfigError(f"Threshold file {path} must contain a mapping")

    try:
        thresholds = AlertThresholds(**section)
    except ValidationError as e:
        raise ThresholdConfigError(f"Invalid thresholds in {path}: {e}") from e

    logger.info("Loaded alert thresholds from %s", path)
    return thresholds
