from __future__ import annotations

from dataclasses import dataclass

import numpy as np

import puck_sim.config as cfg
from puck_sim.grid import Field, PuckGrid
from puck_sim.physics import SimulationParameters, kozeny_carman_permeability


@dataclass(frozen=True, slots=True, eq=False)
class Medium:
    porosity: Field      # [-]
    permeability: Field  # [m^2]


def distribution_severity(quality: float) -> float:
    """0 for a perfectly distributed bed, 1 at the worst supported quality."""
    span = 1.0 - cfg.DISTRIBUTION_QUALITY_MIN
    return float(np.clip((1.0 - quality) / span, 0.0, 1.0))


def wall_band_weights(grid: PuckGrid, band: float = cfg.WALL_BAND) -> np.ndarray:
    """Per-column weight: 0 inside the bulk, rising linearly to 1 at the wall."""
    rfrac = grid.radial_fraction(np.arange(grid.cols))
    return np.clip(1.0 - (1.0 - rfrac) / band, 0.0, 1.0)


def fines_weights(grid: PuckGrid, depth: float = cfg.FINES_DEPTH) -> np.ndarray:
    """Per-row weight: 0 above the fines layer, rising linearly to 1 at the exit row."""
    zfrac = grid.depth_fraction(np.arange(grid.rows))
    return np.clip(1.0 - (1.0 - zfrac) / depth, 0.0, 1.0)


def distribution_noise(params: SimulationParameters, grid: PuckGrid) -> np.ndarray:
    """
    Unit-amplitude porosity perturbation (rows, cols): a vertical streak per
    column plus independent per-cell scatter. Seeded from the bed parameters,
    so the same bed always gets the same pattern.
    Streaks in the wall band are voids only (non-negative).
    """
    rng = np.random.default_rng(params.bed_seed())
    streak = rng.standard_normal(grid.cols)
    scatter = rng.standard_normal((grid.rows, grid.cols))

    streak = np.where(wall_band_weights(grid) > 0.0, np.abs(streak), streak)
    return cfg.STREAK_AMPLITUDE * streak[None, :] + cfg.CELL_AMPLITUDE * scatter


def build_porosity(params: SimulationParameters, grid: PuckGrid) -> np.ndarray:
    n, m = grid.shape
    eps = np.full((n, m), params.base_porosity, dtype=np.float64)

    # wall effect: looser packing against the basket wall ("donut")
    severity = distribution_severity(params.distribution_quality)
    boost = cfg.WALL_BOOST_MIN + (cfg.WALL_BOOST_MAX - cfg.WALL_BOOST_MIN) * severity
    eps *= (1.0 + boost * wall_band_weights(grid))[None, :]

    # uneven distribution
    scale = 1.0 - params.distribution_quality
    if scale > 0.0:
        eps += scale * distribution_noise(params, grid)

    return np.clip(eps, cfg.POROSITY_MIN, cfg.POROSITY_MAX)


def build_permeability(params: SimulationParameters, grid: PuckGrid, porosity: np.ndarray) -> np.ndarray:
    k = kozeny_carman_permeability(params.particle_diameter_m, porosity)

    # fines migrate to the screen and clog the bottom of the bed
    k = k * (1.0 - cfg.FINES_REDUCTION * fines_weights(grid))[:, None]

    assert k.shape == grid.shape
    assert np.all(np.isfinite(k)) and np.all(k > 0.0)
    return k


def build_medium(params: SimulationParameters, grid: PuckGrid) -> Medium:
    eps = build_porosity(params, grid)
    k = build_permeability(params, grid, eps)
    return Medium(porosity=Field.from_array(eps), permeability=Field.from_array(k))
