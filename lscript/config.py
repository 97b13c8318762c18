"""
lscript Configuration
=====================
Run parameters shared by the rewriter and the turtle interpreter.
"""
import math
from dataclasses import dataclass, fields, replace
from typing import Any, Mapping

from .errors import ConfigurationError


DEFAULT_SEED = 0x5EED
MIN_SCALE = 1e-6
ANGLE_UNITS = ("radians", "degrees")


@dataclass(frozen=True)
class EngineConfig:
    """Configuration for one L-system run.

    Only populate the fields you need; defaults give a radian-based turtle
    at the origin facing +Y.
    """

    iterations: int = 1                                    # Generations to rewrite
    seed: int = DEFAULT_SEED                               # numpy default_rng seed
    angle_unit: str = "radians"                            # "radians" or "degrees"
    origin: tuple[float, float, float] = (0.0, 0.0, 0.0)   # Turtle start position
    scale: float = 1.0                                     # Multiplies every move distance
    rotation: tuple[float, float, float] = (0.0, 0.0, 0.0) # Initial yaw, pitch, roll
    emit_origin: bool = False                              # Renderer aid: start position as vertex 0
    max_modules: int | None = None                         # Growth limit per generation

    def __post_init__(self):
        try:
            object.__setattr__(self, "origin", tuple(float(v) for v in self.origin))
            object.__setattr__(self, "rotation", tuple(float(v) for v in self.rotation))
            object.__setattr__(self, "scale", float(self.scale))
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"Invalid numeric configuration value: {exc}") from exc
        self.validate()

    def validate(self):
        """Raise ConfigurationError on the first invalid field."""
        if isinstance(self.iterations, bool) or not isinstance(self.iterations, int):
            raise ConfigurationError(f"iterations must be an integer, got {self.iterations!r}")
        if self.iterations < 0:
            raise ConfigurationError(f"iterations must be >= 0, got {self.iterations}")
        if isinstance(self.seed, bool) or not isinstance(self.seed, int):
            raise ConfigurationError(f"seed must be an integer, got {self.seed!r}")
        if not 0 <= self.seed < 2 ** 64:
            raise ConfigurationError(f"seed must be in [0, 2**64), got {self.seed}")
        if self.angle_unit not in ANGLE_UNITS:
            raise ConfigurationError(
                f"angle_unit must be one of {', '.join(ANGLE_UNITS)}, got {self.angle_unit!r}"
            )
        if len(self.origin) != 3 or len(self.rotation) != 3:
            raise ConfigurationError("origin and rotation need exactly three components")
        if not all(math.isfinite(v) for v in self.origin + self.rotation):
            raise ConfigurationError("origin and rotation must be finite")
        if not math.isfinite(self.scale) or abs(self.scale) < MIN_SCALE:
            raise ConfigurationError(
                f"scale magnitude must be at least {MIN_SCALE}, got {self.scale}"
            )
        if self.max_modules is not None and self.max_modules < 1:
            raise ConfigurationError(f"max_modules must be positive, got {self.max_modules}")

    def to_radians(self, angle: float) -> float:
        """Convert an angle given in the configured unit to radians."""
        if self.angle_unit == "degrees":
            return math.radians(angle)
        return angle

    def with_overrides(self, **changes: Any) -> "EngineConfig":
        """Return a copy with some fields replaced (validated again)."""
        return replace(self, **changes)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """Build a config from a plain mapping, rejecting unknown keys."""
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigurationError(f"Unknown configuration key(s): {', '.join(unknown)}")
        return cls(**dict(data))
