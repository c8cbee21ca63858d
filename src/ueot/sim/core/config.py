from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields, replace
from enum import IntEnum
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

MAX_AGENTS = 400
MAX_FOOD = 1500
SHOCK_MAGNITUDE = 50.0
SHOCK_DECAY_PER_TICK = 2.0


class SpinRule(IntEnum):
    OPPOSITE = -1
    NONE = 0
    LIKE = 1

    def next(self) -> "SpinRule":
        if self is SpinRule.OPPOSITE:
            return SpinRule.LIKE
        if self is SpinRule.LIKE:
            return SpinRule.NONE
        return SpinRule.OPPOSITE


@dataclass(frozen=True)
class SimulationParams:
    pi_bias: float = 2.0
    phi_bias: float = 2.0
    coupling: float = 0.5
    # Only feeds the shock damage term; otherwise a rendering hint.
    rigidity: float = 0.3
    hierarchy_str: float = 1.0
    friction: float = 0.02
    spin_force: float = 1.0
    spin_ratio: float = 0.5
    spin_rule: int = SpinRule.OPPOSITE
    openness: float = 1.0
    food_regen: float = 20.0
    food_value: float = 30.0
    metabolism: float = 1.0
    repro_threshold: float = 150.0
    decay_entropy: float = 0.7
    shock_intensity: float = 0.0
    conserve_momentum: bool = True

    def with_changes(self, **changes: Any) -> "SimulationParams":
        return replace(self, **changes)


@dataclass
class ParamRanges:
    pi_bias: tuple[float, float] = (0.0, 10.0)
    phi_bias: tuple[float, float] = (0.0, 20.0)
    coupling: tuple[float, float] = (0.0, 100.0)
    rigidity: tuple[float, float] = (0.0, 1.0)
    hierarchy_str: tuple[float, float] = (0.0, 10.0)
    friction: tuple[float, float] = (0.0, 0.2)
    spin_force: tuple[float, float] = (0.0, 5.0)
    spin_ratio: tuple[float, float] = (0.0, 1.0)
    openness: tuple[float, float] = (0.0, 1.0)
    food_regen: tuple[float, float] = (0.0, 100.0)
    food_value: tuple[float, float] = (5.0, 100.0)
    metabolism: tuple[float, float] = (0.1, 5.0)
    repro_threshold: tuple[float, float] = (50.0, 300.0)
    decay_entropy: tuple[float, float] = (0.1, 1.0)


@dataclass
class SimulationConfig:
    width: float = 800.0
    height: float = 400.0
    initial_agents: int = 60
    initial_food: int = 150
    seed: Optional[int] = None
    config_version: str = "v1"
    params: SimulationParams = field(default_factory=SimulationParams)
    ranges: ParamRanges = field(default_factory=ParamRanges)

    @staticmethod
    def from_yaml(path: Path) -> "SimulationConfig":
        data = yaml.safe_load(Path(path).read_text()) or {}
        return load_config(data)


_CAMEL_ALIASES = {
    "piBias": "pi_bias",
    "phiBias": "phi_bias",
    "hierarchyStr": "hierarchy_str",
    "spinForce": "spin_force",
    "spinRatio": "spin_ratio",
    "spinRule": "spin_rule",
    "foodRegen": "food_regen",
    "foodValue": "food_value",
    "reproThreshold": "repro_threshold",
    "decayEntropy": "decay_entropy",
    "shockIntensity": "shock_intensity",
    "conserveMomentum": "conserve_momentum",
    "initialAgents": "initial_agents",
    "initialFood": "initial_food",
    "configVersion": "config_version",
}

_PARAM_NAMES = {f.name for f in fields(SimulationParams)}
_RANGE_NAMES = {f.name for f in fields(ParamRanges)}
_DEFAULT_RANGES = ParamRanges()


def _normalize_keys(raw: Dict[str, Any], known: set[str], section: str) -> Dict[str, Any]:
    normalized: Dict[str, Any] = {}
    for key, value in raw.items():
        name = _CAMEL_ALIASES.get(key, key)
        if name not in known:
            raise ValueError(f"Unknown {section} key: {key}")
        normalized[name] = value
    return normalized


def _finite(name: str, value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a number, got {value!r}") from exc
    if not math.isfinite(number):
        raise ValueError(f"{name} must be finite, got {value!r}")
    return number


def _pair(value: Any, default: tuple[float, float]) -> tuple[float, float]:
    if isinstance(value, (tuple, list)) and len(value) == 2:
        try:
            low, high = float(value[0]), float(value[1])
        except (TypeError, ValueError):
            return default
        if not (math.isfinite(low) and math.isfinite(high)):
            return default
        if high < low:
            low, high = high, low
        return (low, high)
    return default


def load_ranges(raw: Dict[str, Any]) -> ParamRanges:
    values = _normalize_keys(raw, _RANGE_NAMES, "range")
    return ParamRanges(**{name: _pair(value, getattr(_DEFAULT_RANGES, name)) for name, value in values.items()})


def clamp_params(params: SimulationParams, ranges: ParamRanges | None = None) -> SimulationParams:
    """Validate a parameter bundle and clamp every ranged field into its range."""
    ranges = ranges if ranges is not None else _DEFAULT_RANGES
    changes: Dict[str, Any] = {}
    for name in _RANGE_NAMES:
        value = _finite(name, getattr(params, name))
        low, high = _pair(getattr(ranges, name), getattr(_DEFAULT_RANGES, name))
        clamped = max(low, min(high, value))
        if clamped != value:
            logger.debug("Clamped %s from %s to %s", name, value, clamped)
        changes[name] = clamped
    # spin_ratio and openness are fractions whatever the slider range says
    changes["spin_ratio"] = max(0.0, min(1.0, changes["spin_ratio"]))
    changes["openness"] = max(0.0, min(1.0, changes["openness"]))
    spin_rule = params.spin_rule
    if isinstance(spin_rule, float) and not spin_rule.is_integer():
        raise ValueError(f"spin_rule must be one of -1, 0, 1, got {spin_rule!r}")
    try:
        changes["spin_rule"] = SpinRule(int(spin_rule))
    except (TypeError, ValueError) as exc:
        raise ValueError(f"spin_rule must be one of -1, 0, 1, got {spin_rule!r}") from exc
    changes["shock_intensity"] = max(0.0, _finite("shock_intensity", params.shock_intensity))
    changes["conserve_momentum"] = bool(params.conserve_momentum)
    return replace(params, **changes)


def load_params(raw: Dict[str, Any], ranges: ParamRanges | None = None) -> SimulationParams:
    values = _normalize_keys(raw, _PARAM_NAMES, "parameter")
    return clamp_params(SimulationParams(**values), ranges)


def load_config(raw: dict) -> SimulationConfig:
    ranges = load_ranges(raw.get("ranges", {}) or {})
    params = load_params(raw.get("params", {}) or {}, ranges)
    sim_values = _normalize_keys(
        {k: v for k, v in raw.items() if k not in {"params", "ranges"}},
        {"width", "height", "initial_agents", "initial_food", "seed", "config_version"},
        "simulation",
    )
    config = SimulationConfig(params=params, ranges=ranges, **sim_values)
    validate_arena(config.width, config.height, config.initial_agents, config.initial_food)
    return config


def validate_arena(width: float, height: float, initial_agents: int, initial_food: int) -> None:
    if _finite("width", width) <= 0 or _finite("height", height) <= 0:
        raise ValueError(f"Arena dimensions must be positive, got {width}x{height}")
    if int(initial_agents) < 0:
        raise ValueError(f"initial_agents must be non-negative, got {initial_agents}")
    if int(initial_food) < 0:
        raise ValueError(f"initial_food must be non-negative, got {initial_food}")
