from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from .metrics import TickMetrics


@dataclass(slots=True)
class Snapshot:
    tick: int
    metrics: Optional[TickMetrics]
    agents: List[Dict[str, Any]]
    foods: List[Dict[str, Any]]
    corpses: List[Dict[str, Any]]
    ripples: List[Dict[str, Any]]
    forces: Dict[int, Dict[str, Any]]
    world: "SnapshotWorld"
    metadata: "SnapshotMetadata"


@dataclass(slots=True)
class SnapshotWorld:
    width: float
    height: float


@dataclass(slots=True)
class SnapshotMetadata:
    seed: Optional[int]
    config_version: str
    shock_intensity: float
    spin_rule: int
