"""
ldstake Configuration

Values come from, in increasing priority:
- built-in defaults
- an optional YAML file (``LDSTAKE_CONFIG_FILE`` or an explicit path)
- ``LDSTAKE_*`` environment variables
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass, fields
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)


class UnstakeRewardPolicy(Enum):
    """What happens to accrued whole-week rewards when principal is unstaked."""
    PRESERVE = "preserve"  # left in place, claimable later
    CLAIM = "claim"  # paid out before principal is returned
    FORFEIT = "forfeit"  # dropped; swept to treasury when one is set


class ConfigurationError(Exception):
    """Raised when required configuration is missing or invalid."""
    pass


# APR has two implied decimals: 5000 == 50.00%, 100 == 1.00%
MIN_APR_RATE = 100

_VALID_LOG_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}

_ENV_KEYS = {
    "environment": "LDSTAKE_ENVIRONMENT",
    "default_apr_rate": "LDSTAKE_DEFAULT_APR_RATE",
    "unstake_reward_policy": "LDSTAKE_UNSTAKE_REWARD_POLICY",
    "log_level": "LDSTAKE_LOG_LEVEL",
    "log_file": "LDSTAKE_LOG_FILE",
    "state_file": "LDSTAKE_STATE_FILE",
}


@dataclass
class StakingConfig:
    """Runtime settings for a staking deployment."""

    environment: str = "development"
    default_apr_rate: int = 5000
    unstake_reward_policy: UnstakeRewardPolicy = UnstakeRewardPolicy.PRESERVE
    log_level: str = "INFO"
    log_file: Optional[str] = None
    state_file: Optional[str] = None

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        if isinstance(self.unstake_reward_policy, str):
            try:
                self.unstake_reward_policy = UnstakeRewardPolicy(self.unstake_reward_policy.lower())
            except ValueError:
                choices = ", ".join(p.value for p in UnstakeRewardPolicy)
                raise ConfigurationError(
                    f"unstake_reward_policy must be one of: {choices} "
                    f"(got {self.unstake_reward_policy!r})"
                )

        try:
            self.default_apr_rate = int(self.default_apr_rate)
        except (TypeError, ValueError):
            raise ConfigurationError(
                f"default_apr_rate must be an integer (got {self.default_apr_rate!r})"
            )
        if self.default_apr_rate < MIN_APR_RATE:
            raise ConfigurationError(
                "default_apr_rate must carry two implied decimals, "
                f"e.g. 50% as 5000 (got {self.default_apr_rate})"
            )

        self.log_level = str(self.log_level).upper()
        if self.log_level not in _VALID_LOG_LEVELS:
            raise ConfigurationError(f"Unknown log level: {self.log_level}")

        self.log_file = self.log_file or None
        self.state_file = self.state_file or None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["unstake_reward_policy"] = self.unstake_reward_policy.value
        return data


def _read_yaml_config(path: Path) -> Dict[str, Any]:
    """Load YAML config into dict."""
    if not path.exists():
        raise ConfigurationError(f"Config file {path} does not exist")
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Config file {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping.")
    # Allow the settings to sit under a top-level "staking" section
    if isinstance(data.get("staking"), dict):
        data = data["staking"]
    return data


def load_config(path: str | Path | None = None, environ: Optional[Dict[str, str]] = None) -> StakingConfig:
    """
    Build a StakingConfig from defaults, an optional YAML file and the environment.

    Args:
        path: YAML file to read; falls back to ``LDSTAKE_CONFIG_FILE``
        environ: Environment mapping (defaults to ``os.environ``)

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If the file or any value is invalid
    """
    env = os.environ if environ is None else environ
    values: Dict[str, Any] = {}

    config_path = path or env.get("LDSTAKE_CONFIG_FILE", "").strip()
    if config_path:
        values.update(_read_yaml_config(Path(config_path)))

    known = {f.name for f in fields(StakingConfig)}
    unknown = sorted(set(values) - known)
    if unknown:
        raise ConfigurationError(f"Unknown configuration keys: {', '.join(unknown)}")

    for key, env_var in _ENV_KEYS.items():
        raw = env.get(env_var, "").strip()
        if raw:
            values[key] = raw

    config = StakingConfig(**values)
    logger.debug(
        "Configuration loaded",
        extra={
            "event": "config.loaded",
            "config_file": str(config_path) if config_path else None,
            "environment": config.environment,
        }
    )
    return config
