"""
Utilities for loading beaker scenarios from YAML configuration files.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from pathlib import Path
import random
from typing import Any, Dict, List, Optional, Tuple

import yaml

from sim import Beaker, Clock, ParticleKind, SolutionRegion


logger = logging.getLogger(__name__)


@dataclass
class BeakerBundle:
    """Container returned by configuration loader."""

    beaker: Beaker
    metadata: Dict[str, Any]
    ui: Dict[str, Any] = field(default_factory=dict)


def load_beaker_from_yaml(
    path: Path,
    *,
    clock: Optional[Clock] = None,
    rng: Optional[random.Random] = None,
) -> BeakerBundle:
    """Load a populated Beaker plus associated metadata from a YAML config."""
    data = _load_yaml(path)
    beaker_config = data.get("beaker") or {}
    solution = _build_solution(beaker_config.get("solution"), path)
    if rng is None:
        rng = random.Random(beaker_config.get("seed"))
    beaker = Beaker(solution, clock=clock, rng=rng)

    for kind, quantity in _build_population(data.get("population") or [], path):
        placed = beaker.add_particles(kind, quantity)
        if len(placed) < quantity:
            logger.info(
                "Placed %d of %d %s particles from %s", len(placed), quantity, kind.value, path
            )

    return BeakerBundle(beaker=beaker, metadata=data.get("metadata") or {}, ui=data.get("ui") or {})


def _load_yaml(path: Path) -> Dict[str, Any]:
    with path.open("r", encoding="utf-8") as handle:
        content = yaml.safe_load(handle)
    if not isinstance(content, dict):
        raise ValueError(f"YAML file {path} must contain a mapping at the root.")
    return content


def _build_solution(config: Any, path: Path) -> SolutionRegion:
    if not isinstance(config, dict):
        raise ValueError(f"{path}: beaker.solution must be a mapping with x, y, width, height.")
    try:
        return SolutionRegion(
            x=float(config.get("x", 0.0)),
            y=float(config.get("y", 0.0)),
            width=float(config["width"]),
            height=float(config["height"]),
        )
    except KeyError as exc:
        raise ValueError(f"{path}: beaker.solution is missing {exc.args[0]!r}.") from exc
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{path}: invalid beaker.solution ({exc}).") from exc


def _build_population(entries: List[Dict[str, Any]], path: Path) -> List[Tuple[ParticleKind, int]]:
    population: List[Tuple[ParticleKind, int]] = []
    for entry in entries:
        if "kind" not in entry:
            raise ValueError(f"{path}: each population entry requires a kind.")
        try:
            kind = ParticleKind.parse(str(entry["kind"]))
        except ValueError as exc:
            raise ValueError(f"{path}: {exc}") from exc
        try:
            quantity = int(entry.get("quantity", 0))
        except (TypeError, ValueError) as exc:
            raise ValueError(
                f"{path}: quantity for {kind.value} must be an integer, got {entry.get('quantity')!r}."
            ) from exc
        if quantity < 0:
            raise ValueError(f"{path}: quantity for {kind.value} must be non-negative.")
        population.append((kind, quantity))
    return population
