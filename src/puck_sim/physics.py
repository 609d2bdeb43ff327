from __future__ import annotations

import hashlib
import math
from dataclasses import dataclass, replace
from typing import Optional

import numpy as np

import puck_sim.config as cfg


# (temperature [C], dynamic viscosity [Pa*s]), CRC handbook
_VISCOSITY_TABLE = np.array([
    (20.0, 1.002e-3), (25.0, 0.890e-3), (30.0, 0.798e-3),
    (40.0, 0.653e-3), (50.0, 0.547e-3), (60.0, 0.467e-3),
    (70.0, 0.404e-3), (80.0, 0.354e-3), (90.0, 0.315e-3),
    (95.0, 0.298e-3), (100.0, 0.282e-3),
])

BAR = 1e5  # Pa


def _clamp(x: float, lo: float, hi: float) -> float:
    return float(min(hi, max(lo, x)))


@dataclass(frozen=True, slots=True)
class BasketSpec:
    id: str
    name: str
    diameter_mm: float
    depth_mm: float             # internal height
    nominal_dose_g: float
    hole_count: int = 0
    hole_diameter_mm: float = 0.0
    has_back_pressure_valve: bool = False
    back_pressure_bar: float = 0.0  # valve cracking pressure, only if the flag is set
    description: str = ""

    @property
    def radius_m(self) -> float:
        return self.diameter_mm / 2000.0

    @property
    def area_m2(self) -> float:
        return math.pi * self.radius_m ** 2


@dataclass(frozen=True, slots=True)
class SimulationParameters:
    """
    One simulation case. Immutable; every derived quantity is recomputed
    from the fields so two equal instances always simulate identically.
    """
    basket: BasketSpec
    grind_size_microns: float = 400.0     # particle diameter [um]
    dose_grams: float = 18.0
    tamp_pressure_kg: float = 15.0
    brew_pressure_bar: float = 9.0        # at the puck inlet
    water_temp_c: float = 93.0
    bean_density: float = 1.15            # g/cm^3
    moisture_content: float = 0.10        # fraction
    distribution_quality: float = 0.85    # 1.0 = perfectly even

    def clamped(self) -> "SimulationParameters":
        changes = {}
        for name, (lo, hi) in cfg.PARAM_RANGES.items():
            value = float(getattr(self, name))
            if not math.isfinite(value):
                value = lo
            changes[name] = _clamp(value, lo, hi)
        return replace(self, **changes)

    def with_sensor_overrides(
        self,
        brew_pressure_bar: Optional[float] = None,
        water_temp_c: Optional[float] = None,
    ) -> "SimulationParameters":
        """Substitute live machine readings; anything left as None is kept."""
        changes = {}
        if brew_pressure_bar is not None:
            changes["brew_pressure_bar"] = float(brew_pressure_bar)
        if water_temp_c is not None:
            changes["water_temp_c"] = float(water_temp_c)
        return replace(self, **changes)

    # ---------------- derived bed properties ----------------

    @property
    def base_porosity(self) -> float:
        tamp = cfg.TAMP_POROSITY_DROP * (1.0 - math.exp(-self.tamp_pressure_kg / cfg.TAMP_SCALE_KG))
        swelling = cfg.MOISTURE_SWELLING * self.moisture_content
        packing = cfg.DENSITY_PACKING * (self.bean_density - cfg.DENSITY_REFERENCE)
        eps = cfg.POROSITY_LOOSE - tamp - swelling - packing
        return _clamp(eps, cfg.POROSITY_MIN, cfg.POROSITY_MAX)

    @property
    def puck_height_mm(self) -> float:
        radius_cm = self.basket.diameter_mm / 20.0
        area_cm2 = math.pi * radius_cm * radius_cm
        volume_cm3 = self.dose_grams / (self.bean_density * (1.0 - self.base_porosity))
        return volume_cm3 / area_cm2 * 10.0

    @property
    def headspace_mm(self) -> float:
        return self.basket.depth_mm - self.puck_height_mm

    @property
    def particle_diameter_m(self) -> float:
        return self.grind_size_microns * 1e-6

    @property
    def driving_pressure_pa(self) -> float:
        """Inlet gauge pressure; a closed back-pressure valve holds all of it."""
        p = self.brew_pressure_bar
        if self.basket.has_back_pressure_valve:
            p -= self.basket.back_pressure_bar
        return max(0.0, p) * BAR

    # ---------------- identity ----------------

    def _digest(self, names) -> str:
        h = hashlib.sha256()
        for name in names:
            h.update(f"{name}={getattr(self, name)!r};".encode())
        b = self.basket
        h.update(
            f"basket={b.id!r},{b.diameter_mm!r},{b.depth_mm!r},{b.nominal_dose_g!r},"
            f"{b.has_back_pressure_valve!r},{b.back_pressure_bar!r}".encode()
        )
        return h.hexdigest()

    def fingerprint(self) -> str:
        return self._digest(sorted(cfg.PARAM_RANGES))

    def bed_seed(self) -> int:
        """
        Seed for the distribution noise. Only the quantities that describe how
        the bed was loaded enter the hash: grind, pressure, temperature and
        distribution quality change amplitude or flow, never the realization.
        """
        digest = self._digest(("dose_grams", "tamp_pressure_kg", "bean_density", "moisture_content"))
        return int(digest[:16], 16)


def water_viscosity(temp_c: float) -> float:
    """Dynamic viscosity of water [Pa*s], interpolated and clamped to 20-100 C."""
    t = _clamp(temp_c, _VISCOSITY_TABLE[0, 0], _VISCOSITY_TABLE[-1, 0])
    return float(np.interp(t, _VISCOSITY_TABLE[:, 0], _VISCOSITY_TABLE[:, 1]))


def kozeny_carman_permeability(particle_diameter_m, porosity, scale: float = cfg.PERMEABILITY_SCALE):
    """
    k = scale * eps^3 d^2 / (180 (1-eps)^2)   [m^2]
    Works on scalars and arrays. eps is clamped into (0, 1) first.
    """
    eps = np.clip(porosity, cfg.POROSITY_EPS, 1.0 - cfg.POROSITY_EPS)
    d = particle_diameter_m
    return scale * eps ** 3 * d ** 2 / (180.0 * (1.0 - eps) ** 2)


def ergun_inertial_factor(velocity, particle_diameter_m: float, porosity, mu: float,
                          rho: float = cfg.WATER_DENSITY):
    """
    Ergun: dP/L = 150 mu (1-eps)^2 v / (d^2 eps^3) + 1.75 rho (1-eps) v^2 / (d eps^3)
    Returns inertial / viscous = 1.75 rho d |v| / (150 mu (1-eps)).
    """
    eps = np.clip(porosity, cfg.POROSITY_EPS, 1.0 - cfg.POROSITY_EPS)
    return 1.75 * rho * particle_diameter_m * np.abs(velocity) / (150.0 * mu * (1.0 - eps))
