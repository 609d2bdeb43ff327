from __future__ import annotations

from typing import List

import numpy as np

import puck_sim.config as cfg
from puck_sim.grid import Index2D, PuckGrid
from puck_sim.physics import BasketSpec


def exit_velocity_cv(v_z: np.ndarray) -> float:
    """Coefficient of variation of the axial velocity across the bottom row; 0 without flow."""
    exit_row = np.asarray(v_z)[-1, :]
    mean = float(np.mean(exit_row))
    if mean <= 0.0:
        return 0.0
    return float(np.std(exit_row)) / mean


def channeling_risk(cv: float, saturation: float = cfg.CV_SATURATION) -> float:
    return float(min(1.0, max(0.0, cv / saturation)))


def uniformity_index(cv: float) -> float:
    return 1.0 / (1.0 + max(0.0, cv))


def find_channels(v_z: np.ndarray, threshold: float = cfg.CHANNEL_THRESHOLD) -> List[Index2D]:
    """
    Cells whose axial velocity exceeds threshold x the mean of their row.
    Rows without net downward flow have no channels.
    """
    v_z = np.asarray(v_z)
    out: List[Index2D] = []
    for i in range(v_z.shape[0]):
        mean = float(np.mean(v_z[i, :]))
        if mean <= 0.0:
            continue
        for j in np.flatnonzero(v_z[i, :] > threshold * mean):
            out.append((int(i), int(j)))
    return out


def effective_shot_time(flow_ml_s: float, basket: BasketSpec,
                        ratio: float = cfg.BREW_RATIO, cap: float = cfg.SHOT_TIME_CAP_S) -> float:
    """Seconds to reach nominal dose x ratio of output at the given flow (water ~1 g/ml)."""
    if flow_ml_s <= cfg.MIN_FLOW_ML_S:
        return float(cap)
    return float(min(cap, basket.nominal_dose_g * ratio / flow_ml_s))


def residence_time_field(grid: PuckGrid, speed: np.ndarray, porosity: np.ndarray) -> np.ndarray:
    """Pore transit time through each cell, eps dz / |v| [s]; 0 where nothing flows."""
    moving = speed > 0.0
    safe = np.where(moving, speed, 1.0)
    return np.where(moving, porosity * grid.dz / safe, 0.0)


def extraction_field(grid: PuckGrid, residence: np.ndarray,
                     exposure_floor: float = cfg.EXPOSURE_FLOOR) -> np.ndarray:
    """
    Extraction proxy in [0, 1]: exposure x (1 - exp(-t / t_mean)).
    Exposure falls linearly from 1 on the inlet row (wetted first) to
    exposure_floor on the exit row. Longer residence always extracts more.
    """
    moving = residence > 0.0
    if not np.any(moving):
        return np.zeros_like(residence)

    t_ref = float(np.mean(residence[moving]))
    depth = np.arange(grid.rows) / (grid.rows - 1)
    exposure = 1.0 - (1.0 - exposure_floor) * depth

    ext = exposure[:, None] * (1.0 - np.exp(-residence / t_ref))
    return np.clip(ext, 0.0, 1.0)
