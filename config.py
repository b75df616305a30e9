"""Analyzer settings with ``PACKOPT_*`` environment overrides."""
from __future__ import annotations

from dataclasses import dataclass, fields
import os
from typing import Callable, Mapping

from models import Carrier
from packing_engine import FRAGILE_MODES, PACKING_ALGORITHMS, PackingConstraints
from volume_model import DEFAULT_DIM_FACTOR


ENV_PREFIX = "PACKOPT_"
TRUE_VALUES = {"1", "true", "yes", "y", "on"}
FALSE_VALUES = {"0", "false", "no", "n", "off"}


@dataclass(frozen=True)
class AnalyzerConfig:
    allow_rotation: bool = True
    allow_stacking: bool = True
    max_stack_height: float = 48.0
    minimum_fill_rate: float = 30.0
    target_efficiency: float = 75.0
    include_shipping_costs: bool = True
    dim_factor: float = DEFAULT_DIM_FACTOR
    fragile_handling: str = "padded"
    packing_algorithm: str = "best_fit"
    batch_size: int = 100
    carrier: Carrier = Carrier.UPS_GROUND
    monthly_volume: int | None = None
    implementation_cost: float = 0.0
    storage_days: float = 1.0

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be >= 1")
        if self.dim_factor <= 0:
            raise ValueError("dim_factor must be greater than 0")
        if self.max_stack_height <= 0:
            raise ValueError("max_stack_height must be greater than 0")
        if self.fragile_handling not in FRAGILE_MODES:
            raise ValueError(f"fragile_handling must be one of {', '.join(FRAGILE_MODES)}")
        if self.packing_algorithm not in PACKING_ALGORITHMS:
            raise ValueError(f"packing_algorithm must be one of {', '.join(PACKING_ALGORITHMS)}")
        if not 0 <= self.minimum_fill_rate <= 100 or not 0 <= self.target_efficiency <= 100:
            raise ValueError("minimum_fill_rate and target_efficiency must be within 0-100")
        if self.monthly_volume is not None and self.monthly_volume < 0:
            raise ValueError("monthly_volume must be >= 0")
        if self.implementation_cost < 0 or self.storage_days < 0:
            raise ValueError("implementation_cost and storage_days must be >= 0")
        object.__setattr__(self, "carrier", Carrier(self.carrier))

    def packing_constraints(self) -> PackingConstraints:
        return PackingConstraints(
            allow_rotation=self.allow_rotation,
            allow_stacking=self.allow_stacking,
            max_stack_height=self.max_stack_height,
            fragile_handling=self.fragile_handling,
        )

    def as_dict(self) -> dict[str, object]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["carrier"] = self.carrier.value
        return data

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "AnalyzerConfig":
        """Defaults overridden by ``PACKOPT_<FIELD>`` variables (e.g. ``PACKOPT_BATCH_SIZE``)."""
        getenv: Callable[[str], str | None] = environ.get if environ is not None else os.getenv
        overrides: dict[str, object] = {}
        for f in fields(cls):
            raw = getenv(ENV_PREFIX + f.name.upper())
            if raw is None or not str(raw).strip():
                continue
            overrides[f.name] = _coerce(f.name, str(raw).strip(), f.default)
        return cls(**overrides)


def _coerce(name: str, raw: str, default: object) -> object:
    if isinstance(default, bool):
        lowered = raw.lower()
        if lowered in TRUE_VALUES:
            return True
        if lowered in FALSE_VALUES:
            return False
        raise ValueError(f"{ENV_PREFIX}{name.upper()} must be a boolean, got '{raw}'")
    if name in {"batch_size", "monthly_volume"}:
        try:
            return int(raw)
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}{name.upper()} must be an integer, got '{raw}'") from None
    if isinstance(default, Carrier):
        try:
            return Carrier(raw.lower())
        except ValueError:
            raise ValueError(f"Unknown carrier '{raw}' in {ENV_PREFIX}CARRIER") from None
    if isinstance(default, float):
        try:
            return float(raw)
        except ValueError:
            raise ValueError(f"{ENV_PREFIX}{name.upper()} must be a number, got '{raw}'") from None
    return raw.lower()
