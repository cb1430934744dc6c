from __future__ import annotations

import logging
import os
from dataclasses import asdict, fields, is_dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Type, TypeVar

import yaml

from .schema import (
    CommissionConfig,
    GeneralConfig,
    HumanizationConfig,
    MinerConfig,
    MiningConfig,
    RefuelConfig,
    ScoringConfig,
    SellConfig,
    WarpConfig,
)

log = logging.getLogger(__name__)

T = TypeVar("T")


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------

PROJECT_ROOT = Path(__file__).resolve().parents[2]
CONFIG_ROOT = PROJECT_ROOT / "config"
DEFAULT_CONFIG_NAME = "miner.yaml"

# Lets deployments point at another file without code changes.
CONFIG_ENV_VAR = "MINER_CONFIG"

_SECTIONS: Dict[str, Type[Any]] = {
    "general": GeneralConfig,
    "mining": MiningConfig,
    "scoring": ScoringConfig,
    "commission": CommissionConfig,
    "refuel": RefuelConfig,
    "sell": SellConfig,
    "warp": WarpConfig,
    "humanization": HumanizationConfig,
}

VALID_MACRO_TYPES = ("mining", "commission")
VALID_ORE_TYPES = (
    "mithril", "diamond", "emerald", "redstone", "lapis", "gold", "iron", "coal",
)
VALID_CLAIM_METHODS = ("emissary", "pigeon")


def _resolve_path(path: Optional[Path]) -> Path:
    if path is not None:
        return Path(path)
    override = os.getenv(CONFIG_ENV_VAR)
    if override:
        return Path(override)
    return CONFIG_ROOT / DEFAULT_CONFIG_NAME


def _load_yaml(path: Path) -> Dict[str, Any]:
    """Load a YAML mapping from `path`."""
    if not path.exists():
        raise FileNotFoundError(f"Missing config file: {path}")
    with path.open("r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Expected mapping at top of {path}, got {type(data)}")
    return data


def _build_section(cls: Type[T], raw: Any, section: str) -> T:
    """Instantiate a section dataclass, ignoring unknown keys."""
    if raw is None:
        return cls()
    if not isinstance(raw, dict):
        raise ValueError(f"Config section '{section}' must be a mapping, got {type(raw)}")
    known = {f.name for f in fields(cls)}
    unknown = sorted(set(raw) - known)
    if unknown:
        log.warning("Ignoring unknown keys in '%s': %s", section, ", ".join(unknown))
    return cls(**{k: v for k, v in raw.items() if k in known})


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def config_from_dict(data: Dict[str, Any]) -> MinerConfig:
    """Build and validate a MinerConfig from an already-parsed mapping."""
    sections = {
        name: _build_section(cls, data.get(name), name)
        for name, cls in _SECTIONS.items()
    }
    config = MinerConfig(**sections)
    _validate_config(config)
    return config


def load_config(path: Optional[Path] = None) -> MinerConfig:
    """Main entry point: returns a fully resolved MinerConfig."""
    resolved = _resolve_path(path)
    config = config_from_dict(_load_yaml(resolved))
    log.info("Loaded config from %s", resolved)
    return config


def save_config(config: MinerConfig, path: Optional[Path] = None) -> Path:
    """Write `config` as YAML; returns the path written."""
    resolved = _resolve_path(path)
    resolved.parent.mkdir(parents=True, exist_ok=True)
    assert is_dataclass(config)
    with resolved.open("w", encoding="utf-8") as f:
        yaml.safe_dump(asdict(config), f, sort_keys=False)
    return resolved


def _validate_config(config: MinerConfig) -> None:
    """Minimal sanity checks."""
    if config.general.macro_type not in VALID_MACRO_TYPES:
        raise ValueError(f"Invalid macro_type: {config.general.macro_type}")
    if config.mining.ore_type not in VALID_ORE_TYPES:
        raise ValueError(f"Invalid ore_type: {config.mining.ore_type}")
    if config.commission.claim_method not in VALID_CLAIM_METHODS:
        raise ValueError(f"Invalid claim_method: {config.commission.claim_method}")
    if config.general.mining_speed < 0:
        raise ValueError("mining_speed must not be negative")
    if config.scoring.reach <= 0 or config.scoring.scan_radius <= 0:
        raise ValueError("scan_radius and reach must be positive")
    if config.mining.ability_retry_ceiling < 1:
        raise ValueError("ability_retry_ceiling must be at least 1")
