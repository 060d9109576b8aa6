"""
Beaker core for the acid/base conjugate equilibrium visualization.

Unit conventions:
    - Positions and collider radii: pixels
    - Velocities: pixels per tick (one tick per animation frame)
    - Timers: milliseconds read from an injected monotonic clock

The model is qualitative. Conjugate bases capture protons on contact, hold
them for a randomized delay, let them drift away, and only become available
again once a short cooldown has elapsed. Nothing here depends on a renderer;
the pygame front end in ``src/ui`` consumes ``BeakerSnapshot`` objects.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
import logging
import math
import random
import time
from typing import Callable, ClassVar, Dict, List, Optional, Tuple, Type, Union

from src.particle_data import get_particle_rule


logger = logging.getLogger(__name__)

Vector = Tuple[float, float]
Clock = Callable[[], float]

BOND_OFFSET: Vector = (10.0, -10.0)
POST_RELEASE_DURATION_MS = 750.0
BONDED_DEPTH_LIFT = 0.5


def monotonic_ms() -> float:
    return time.monotonic() * 1000.0


def vector_add(a: Vector, b: Vector) -> Vector:
    return (a[0] + b[0], a[1] + b[1])


def vector_sub(a: Vector, b: Vector) -> Vector:
    return (a[0] - b[0], a[1] - b[1])


def vector_length(v: Vector) -> float:
    return math.hypot(v[0], v[1])


def vector_zero() -> Vector:
    return (0.0, 0.0)


def random_velocity(max_velocity: float, rng: random.Random) -> float:
    """Uniform velocity component from [-max_velocity, max_velocity]."""
    return max_velocity - rng.random() * 2.0 * max_velocity


def _rule(name: str, key: str):
    rule = get_particle_rule(name)
    if rule is None or key not in rule:
        raise KeyError(f"No '{key}' defined for particle '{name}'.")
    return rule[key]


class ParticleKind(str, Enum):
    PROTON = "Proton"
    STRONG_CONJUGATE_BASE = "StrongConjugateBase"
    WEAK_CONJUGATE_BASE = "WeakConjugateBase"

    @classmethod
    def parse(cls, value: Union["ParticleKind", str]) -> "ParticleKind":
        if isinstance(value, cls):
            return value
        for kind in cls:
            if value in (kind.value, kind.name):
                return kind
        raise ValueError(f"Unknown particle kind: {value!r}")


class BondPhase(str, Enum):
    FREE = "free"
    BONDED = "bonded"
    RELEASING = "releasing"


@dataclass(frozen=True)
class SolutionRegion:
    x: float
    y: float
    width: float
    height: float

    def __post_init__(self) -> None:
        if self.width < 0 or self.height < 0:
            raise ValueError("Solution region width and height must be non-negative.")

    @property
    def max_x(self) -> float:
        return self.x + self.width

    @property
    def max_y(self) -> float:
        return self.y + self.height

    def fits(self, radius: float) -> bool:
        diameter = radius * 2.0
        return diameter < self.width and diameter < self.height


@dataclass(frozen=True)
class EdgeContacts:
    left: bool = False
    top: bool = False
    right: bool = False
    bottom: bool = False


@dataclass
class ReactionContext:
    now_ms: float
    random: random.Random


@dataclass(eq=False)
class Particle:
    """
    Generic movable particle with a circular collider.

    Per-kind constants are class attributes; subclasses override them. The
    reaction table is looked up from ``REACTIONS`` by kind.
    """

    kind: ClassVar[Optional[ParticleKind]] = None
    collider_radius: ClassVar[float] = 1.0
    collider_offset: ClassVar[Vector] = (0.0, 0.0)
    max_velocity: ClassVar[float] = 0.0
    image_path: ClassVar[Optional[str]] = None

    id: int
    position: Vector
    velocity: Vector = field(default_factory=vector_zero)
    depth: float = 0.0

    @property
    def reacts_with(self) -> Dict[ParticleKind, "ReactionHandler"]:
        if self.kind is None:
            return {}
        return REACTIONS.get(self.kind, {})

    def randomize_velocity(self, rng: random.Random) -> None:
        self.velocity = (
            random_velocity(self.max_velocity, rng),
            random_velocity(self.max_velocity, rng),
        )

    def collider_center(self) -> Vector:
        return vector_add(self.position, self.collider_offset)

    def move(self) -> None:
        self.position = vector_add(self.position, self.velocity)

    def overlaps(self, other: "Particle") -> bool:
        delta = vector_sub(other.collider_center(), self.collider_center())
        return vector_length(delta) <= self.collider_radius + other.collider_radius

    def edge_contacts(self, region: SolutionRegion) -> EdgeContacts:
        cx, cy = self.collider_center()
        r = self.collider_radius
        return EdgeContacts(
            left=cx - r <= region.x,
            top=cy - r <= region.y,
            right=cx + r >= region.max_x,
            bottom=cy + r >= region.max_y,
        )

    def reflect(self, contacts: EdgeContacts) -> None:
        vx, vy = self.velocity
        if contacts.left:
            vx = abs(vx)
        elif contacts.right:
            vx = -abs(vx)
        if contacts.top:
            vy = abs(vy)
        elif contacts.bottom:
            vy = -abs(vy)
        self.velocity = (vx, vy)

    def update(self, now_ms: float) -> None:
        """Per-tick hook; no-op for plain particles."""

    def detach(self) -> None:
        """Break any bond this particle participates in."""


@dataclass(eq=False)
class Proton(Particle):
    kind = ParticleKind.PROTON
    collider_radius = float(_rule("Proton", "collider_radius"))
    max_velocity = float(_rule("Proton", "max_velocity"))
    image_path = _rule("Proton", "image_path")

    bonded_base: Optional["ConjugateBase"] = field(default=None, repr=False)

    @property
    def is_bonded(self) -> bool:
        return self.bonded_base is not None

    def detach(self) -> None:
        if self.bonded_base is not None:
            self.bonded_base.detach()


@dataclass
class ProtonBond:
    """Bond bookkeeping held by a conjugate base."""

    release_after_range: Tuple[float, float]
    proton: Optional[Proton] = None
    offset: Vector = BOND_OFFSET
    restore_depth: Optional[float] = None
    release_after: Optional[float] = None
    post_release_duration: float = POST_RELEASE_DURATION_MS


@dataclass(eq=False)
class ConjugateBase(Particle):
    """
    Conjugate base that captures one proton at a time.

    A captured proton is pinned at ``bond.offset`` from the base until
    ``release_after``. It then drifts freely but stays bonded for
    ``post_release_duration`` so the pair cannot immediately rejoin.
    """

    collider_radius = float(_rule("ConjugateBase", "collider_radius"))
    max_velocity = float(_rule("ConjugateBase", "max_velocity"))
    image_path = _rule("ConjugateBase", "image_path")
    release_after_range: ClassVar[Tuple[float, float]] = tuple(
        _rule("ConjugateBase", "release_after_range")
    )

    bond: ProtonBond = field(init=False)

    def __post_init__(self) -> None:
        self.bond = ProtonBond(release_after_range=tuple(self.release_after_range))

    @property
    def proton(self) -> Optional[Proton]:
        return self.bond.proton

    def can_capture(self, proton: Proton) -> bool:
        return self.bond.proton is None and proton.bonded_base is None

    def capture(self, proton: Proton, now_ms: float, fraction: float) -> bool:
        """Bond ``proton`` to this base; ``fraction`` is a draw from U(0, 1)."""
        if not self.can_capture(proton):
            return False
        # Offset plus a scaled spread, not an interpolation between the two.
        low, spread = self.bond.release_after_range
        self.bond.release_after = now_ms + low + spread * fraction
        self.bond.proton = proton
        proton.bonded_base = self
        self.bond.restore_depth = proton.depth
        proton.depth = self.depth + BONDED_DEPTH_LIFT
        logger.debug(
            "Base %d captured proton %d until t=%.1f ms",
            self.id,
            proton.id,
            self.bond.release_after,
        )
        return True

    def bond_phase(self, now_ms: float) -> BondPhase:
        bond = self.bond
        if bond.proton is None or bond.release_after is None:
            return BondPhase.FREE
        if now_ms < bond.release_after:
            return BondPhase.BONDED
        # Includes an elapsed cooldown that update() has not cleared yet.
        return BondPhase.RELEASING

    def update(self, now_ms: float) -> None:
        bond = self.bond
        if bond.release_after is None or bond.proton is None:
            return
        if now_ms < bond.release_after:
            bond.proton.position = vector_add(self.position, bond.offset)
        elif now_ms < bond.release_after + bond.post_release_duration:
            # Released; proton moves under its own velocity.
            pass
        else:
            self.detach()

    def detach(self) -> None:
        bond = self.bond
        proton = bond.proton
        if proton is None:
            bond.release_after = None
            return
        if bond.restore_depth is not None:
            proton.depth = bond.restore_depth
        bond.restore_depth = None
        bond.release_after = None
        proton.bonded_base = None
        bond.proton = None
        logger.debug("Base %d released proton %d", self.id, proton.id)


@dataclass(eq=False)
class StrongConjugateBase(ConjugateBase):
    """Strong conjugate base (pairs with a weak acid)."""

    kind = ParticleKind.STRONG_CONJUGATE_BASE
    image_path = _rule("StrongConjugateBase", "image_path")
    release_after_range = tuple(_rule("StrongConjugateBase", "release_after_range"))


@dataclass(eq=False)
class WeakConjugateBase(ConjugateBase):
    """Weak conjugate base (pairs with a strong acid)."""

    kind = ParticleKind.WEAK_CONJUGATE_BASE
    image_path = _rule("WeakConjugateBase", "image_path")
    release_after_range = tuple(_rule("WeakConjugateBase", "release_after_range"))


ReactionHandler = Callable[[Particle, Particle, ReactionContext], None]


def base_captures_proton(base: Particle, proton: Particle, context: ReactionContext) -> None:
    if not isinstance(base, ConjugateBase) or not isinstance(proton, Proton):
        return
    if base.can_capture(proton):
        base.capture(proton, context.now_ms, context.random.random())


REACTIONS: Dict[ParticleKind, Dict[ParticleKind, ReactionHandler]] = {
    ParticleKind.PROTON: {},
    ParticleKind.STRONG_CONJUGATE_BASE: {ParticleKind.PROTON: base_captures_proton},
    ParticleKind.WEAK_CONJUGATE_BASE: {ParticleKind.PROTON: base_captures_proton},
}

PARTICLE_TYPES: Dict[ParticleKind, Type[Particle]] = {
    ParticleKind.PROTON: Proton,
    ParticleKind.STRONG_CONJUGATE_BASE: StrongConjugateBase,
    ParticleKind.WEAK_CONJUGATE_BASE: WeakConjugateBase,
}


@dataclass
class ParticleState:
    id: int
    kind: ParticleKind
    position: Vector
    velocity: Vector
    depth: float
    collider_radius: float
    image_path: Optional[str]
    bonded_to: Optional[int] = None


@dataclass
class BondState:
    base_id: int
    proton_id: int
    phase: BondPhase
    release_after_ms: Optional[float] = None


@dataclass
class BeakerSnapshot:
    step_index: int
    time_ms: float
    solution: SolutionRegion
    particle_states: List[ParticleState]
    bonds: List[BondState] = field(default_factory=list)

    def count(self, kind: ParticleKind) -> int:
        return sum(1 for state in self.particle_states if state.kind == kind)


class Beaker:
    """
    Owns the particle population and advances it one tick per ``step()``.
    """

    def __init__(
        self,
        solution: SolutionRegion,
        clock: Optional[Clock] = None,
        rng: Optional[random.Random] = None,
    ):
        self.solution = solution
        self.clock: Clock = clock or monotonic_ms
        self.random = rng or random.Random()
        self.particles: List[Particle] = []
        self.groups: Dict[ParticleKind, List[Particle]] = {kind: [] for kind in ParticleKind}
        self.current_step: int = 0
        self.time_ms: float = self.clock()
        self._next_id = 1

    def add_particles(self, kind: Union[ParticleKind, str], quantity: int) -> List[Particle]:
        """Place up to ``quantity`` new particles at random spots in the solution."""
        kind = ParticleKind.parse(kind)
        particle_type = PARTICLE_TYPES[kind]
        added: List[Particle] = []
        for _ in range(max(0, quantity)):
            position = self._random_position(particle_type.collider_radius)
            if position is None:
                logger.debug("No room for %s in %s; skipping placement", kind.value, self.solution)
                continue
            particle = particle_type(id=self._next_id, position=position, depth=float(self._next_id))
            particle.randomize_velocity(self.random)
            self._next_id += 1
            self.groups[kind].append(particle)
            self.particles.append(particle)
            added.append(particle)
        if added:
            logger.debug("Added %d %s particle(s)", len(added), kind.value)
        return added

    def remove_particles(self, kind: Union[ParticleKind, str], quantity: int) -> List[Particle]:
        """Remove up to ``quantity`` particles of ``kind``, newest first."""
        kind = ParticleKind.parse(kind)
        group = self.groups[kind]
        count = max(0, min(quantity, len(group)))
        removed: List[Particle] = []
        for _ in range(count):
            particle = group.pop()
            particle.detach()
            self.particles.remove(particle)
            removed.append(particle)
        if removed:
            logger.debug("Removed %d %s particle(s)", len(removed), kind.value)
        return removed

    def clear(self) -> None:
        for kind in ParticleKind:
            self.remove_particles(kind, len(self.groups[kind]))

    def count(self, kind: Union[ParticleKind, str]) -> int:
        return len(self.groups[ParticleKind.parse(kind)])

    def step(self) -> None:
        now = self.clock()
        context = ReactionContext(now_ms=now, random=self.random)
        for particle in self.particles:
            particle.move()

        for particle in list(self.particles):
            particle.reflect(particle.edge_contacts(self.solution))
            self._resolve_collisions(particle, context)
            particle.update(now)

        self.current_step += 1
        self.time_ms = now

    def bonded_pairs(self) -> List[Tuple[ConjugateBase, Proton]]:
        pairs: List[Tuple[ConjugateBase, Proton]] = []
        for particle in self.particles:
            if isinstance(particle, ConjugateBase) and particle.bond.proton is not None:
                pairs.append((particle, particle.bond.proton))
        return pairs

    def draw_order(self) -> List[Particle]:
        """Particles sorted by depth; ties keep insertion order."""
        return sorted(self.particles, key=lambda particle: particle.depth)

    def snapshot(self) -> BeakerSnapshot:
        now = self.time_ms
        particle_states = []
        for particle in self.draw_order():
            bonded_to: Optional[int] = None
            if isinstance(particle, ConjugateBase) and particle.bond.proton is not None:
                bonded_to = particle.bond.proton.id
            elif isinstance(particle, Proton) and particle.bonded_base is not None:
                bonded_to = particle.bonded_base.id
            particle_states.append(
                ParticleState(
                    id=particle.id,
                    kind=particle.kind,
                    position=particle.position,
                    velocity=particle.velocity,
                    depth=particle.depth,
                    collider_radius=particle.collider_radius,
                    image_path=particle.image_path,
                    bonded_to=bonded_to,
                )
            )
        bonds = [
            BondState(
                base_id=base.id,
                proton_id=proton.id,
                phase=base.bond_phase(now),
                release_after_ms=base.bond.release_after,
            )
            for base, proton in self.bonded_pairs()
        ]
        return BeakerSnapshot(
            step_index=self.current_step,
            time_ms=now,
            solution=self.solution,
            particle_states=particle_states,
            bonds=bonds,
        )

    def _random_position(self, radius: float) -> Optional[Vector]:
        region = self.solution
        if not region.fits(radius):
            return None
        x = region.x + radius + self.random.random() * (region.width - 2.0 * radius)
        y = region.y + radius + self.random.random() * (region.height - 2.0 * radius)
        return (x, y)

    def _resolve_collisions(self, particle: Particle, context: ReactionContext) -> None:
        for kind, handler in particle.reacts_with.items():
            for other in list(self.groups[kind]):
                if other is particle:
                    continue
                if particle.overlaps(other):
                    handler(particle, other, context)
