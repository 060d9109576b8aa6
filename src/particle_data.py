"""Per-kind particle constants used by the beaker core and the renderer."""

from __future__ import annotations

PARTICLE_RULES = {
    "Proton": {
        "collider_radius": 6.0,
        "max_velocity": 3.0,
        "image_path": "assets/proton.png",
        "color": (235, 90, 90),
        "label": "H+",
    },
    "ConjugateBase": {
        "collider_radius": 16.0,
        "max_velocity": 0.5,
        "image_path": "assets/ConjugateBase_Gray.png",
        "release_after_range": (0.0, 5000.0),
        "color": (150, 150, 150),
        "label": "A-",
    },
    # Strong conjugate bases go with weak acids and hold protons longer.
    "StrongConjugateBase": {
        "collider_radius": 16.0,
        "max_velocity": 0.5,
        "image_path": "assets/strong.png",
        "release_after_range": (5000.0, 10000.0),
        "color": (80, 120, 230),
        "label": "Strong A-",
    },
    "WeakConjugateBase": {
        "collider_radius": 16.0,
        "max_velocity": 0.5,
        "image_path": "assets/weak.png",
        "release_after_range": (0.0, 2000.0),
        "color": (90, 200, 140),
        "label": "Weak A-",
    },
}


def get_particle_rule(name: str) -> dict | None:
    """Return constants dict for a particle class name if known."""

    return PARTICLE_RULES.get(name)
