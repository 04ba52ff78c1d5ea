"""
Configuration Manager for the goal progress engine.

Centralizes the engine's constants. Every tunable value is declared here
explicitly and can be overridden from config/runtime.yaml.

Usage:
    from goal_progress.config_manager import config
    limit = config.WEIGHT_MAX
"""
from dataclasses import dataclass

import yaml

from goal_progress.exceptions import ConfigError
from goal_progress.logger import get_logger
from goal_progress.paths import CONFIG_DIR

RUNTIME_CONFIG_PATH = CONFIG_DIR / "runtime.yaml"

logger = get_logger("config")


@dataclass
class EngineConfig:
    """
    Engine runtime constants.
    """

    # === Weights ===

    # Inclusive bounds for a single division item's declared weight
    WEIGHT_MIN: float = 0
    WEIGHT_MAX: float = 100

    # Normalized weights always sum to this value
    WEIGHT_TOTAL: float = 100

    # === Output ===

    # Decimal places kept on the computed percent.
    # Downstream fixtures assume 2; confirm with consumers before changing.
    PERCENT_DECIMALS: int = 2

    # === Validation ===

    # Sub-goal titles longer than this are dropped on set
    MAX_TITLE_LENGTH: int = 200

    # === Collaborators ===

    # Emit activity-feed events on division edits
    EMIT_ACTIVITY: bool = True

    def validate(self) -> None:
        if self.WEIGHT_MIN < 0 or self.WEIGHT_MIN > self.WEIGHT_MAX:
            raise ConfigError(
                f"Invalid weight bounds: [{self.WEIGHT_MIN}, {self.WEIGHT_MAX}]",
                str(RUNTIME_CONFIG_PATH),
            )
        if self.WEIGHT_TOTAL <= 0:
            raise ConfigError("WEIGHT_TOTAL must be positive", str(RUNTIME_CONFIG_PATH))
        if self.PERCENT_DECIMALS < 0:
            raise ConfigError("PERCENT_DECIMALS must be >= 0", str(RUNTIME_CONFIG_PATH))


def _load_runtime_config() -> dict:
    """Load runtime overrides if the file exists."""
    if not RUNTIME_CONFIG_PATH.exists():
        return {}

    try:
        with open(RUNTIME_CONFIG_PATH, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except (yaml.YAMLError, OSError) as e:
        logger.warning("Ignoring unreadable runtime config %s: %s", RUNTIME_CONFIG_PATH, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring runtime config %s: top level is not a mapping", RUNTIME_CONFIG_PATH)
        return {}
    return data


def get_config() -> EngineConfig:
    """
    Build the engine configuration.

    Priority: runtime.yaml > defaults
    """
    base = EngineConfig()
    overrides = _load_runtime_config()

    for key, value in overrides.items():
        if hasattr(base, key):
            setattr(base, key, value)

    base.validate()
    return base


# Module-level singleton
config = get_config()
