from __future__ import annotations

import inspect
import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple

import numpy as np
from scipy.sparse import csr_matrix, diags
from scipy.sparse.linalg import cg, spsolve

import puck_sim.config as cfg
from puck_sim.grid import PuckGrid
from puck_sim.physics import SimulationParameters, ergun_inertial_factor, water_viscosity
from puck_sim.porosity import Medium

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True, eq=False)
class FlowSolution:
    # gauge pressure [Pa], (rows, cols)
    P: np.ndarray
    # Darcy (superficial) velocities [m/s]; v_z positive downward, v_r positive outward
    v_r: np.ndarray
    v_z: np.ndarray
    # effective viscosity after the Ergun correction [Pa*s]
    mu_eff: np.ndarray
    # volumetric flow through the inlet face and the basket screen [m^3/s]
    inflow: float
    outflow: float
    driving_pressure: float
    iterations: int
    converged: bool  # advisory only

    @property
    def speed(self) -> np.ndarray:
        return np.sqrt(self.v_r * self.v_r + self.v_z * self.v_z)


def harmonic_mean(a: np.ndarray, b: np.ndarray) -> np.ndarray:
    s = a + b
    return np.where(s > 0.0, 2.0 * a * b / np.where(s > 0.0, s, 1.0), 0.0)


def transmissibilities(grid: PuckGrid, mobility: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Finite-volume face conductances [m^3/(Pa*s)] for mobility k/mu.
    Tz[i, j]: between nodes (i, j) and (i+1, j), through the ring area of column j.
    Tr[i, j]: between cells (i, j) and (i, j+1), through the cylindrical face at r_{j+1/2}.
    The axis and the wall carry no face, which is the zero-flux condition.
    """
    assert mobility.shape == grid.shape
    a = grid.annular_areas
    Tz = harmonic_mean(mobility[:-1, :], mobility[1:, :]) * a[None, :] / grid.dz

    face = 2.0 * math.pi * grid.face_radii[:-1] * grid.dz
    Tr = harmonic_mean(mobility[:, :-1], mobility[:, 1:]) * face[None, :] / grid.dr
    return Tz, Tr


def _cg_solve(A, b, x0, M, rtol: float, maxiter: int):
    sig = inspect.signature(cg).parameters
    if "rtol" in sig:
        return cg(A, b, x0=x0, M=M, rtol=rtol, atol=0.0, maxiter=maxiter)
    return cg(A, b, x0=x0, M=M, tol=rtol, atol=0.0, maxiter=maxiter)


def solve_pressure(
    grid: PuckGrid,
    mobility: np.ndarray,
    x0: Optional[np.ndarray] = None,
    rtol: float = cfg.CG_RTOL,
    maxiter: int = cfg.CG_MAXITER,
) -> np.ndarray:
    """
    Dimensionless pressure p = P / P_drive on the full grid:
    - Dirichlet: p = 1 on row 0 (inlet), p = 0 on the last row (screen)
    - Unknowns: interior rows
    - Interior equations: sum_faces T (p_c - p_nb) = 0
    """
    n, m = grid.shape
    Tz, Tr = transmissibilities(grid, mobility)
    t_ref = max(float(np.max(Tz)), float(np.max(Tr)) if Tr.size else 0.0)
    if t_ref <= 0.0:
        raise ValueError("mobility field carries no conductance")
    Tz = Tz / t_ref
    Tr = Tr / t_ref

    # unknowns are the interior rows, in flat-buffer order shifted by one row
    N = (n - 2) * m

    def uid(i: int, j: int) -> int:
        return grid.index(i, j) - m

    def conductance(i: int, j: int, ni: int, nj: int) -> float:
        if ni != i:
            return Tz[min(i, ni), j]
        return Tr[i, min(j, nj)]

    rows = []
    cols = []
    data = []
    b = np.zeros(N, dtype=np.float64)

    for i in range(1, n - 1):
        for j in range(m):
            ii = uid(i, j)
            diag = 0.0

            # the axis and the wall have no neighbour, hence no flux
            for (ni, nj) in grid.neighbors4(i, j):
                g = conductance(i, j, ni, nj)
                diag += g
                if ni == 0:
                    b[ii] += g * 1.0
                elif ni < n - 1:
                    rows.append(ii); cols.append(uid(ni, nj)); data.append(-g)
                # ni == n-1: screen, p = 0

            rows.append(ii); cols.append(ii); data.append(diag)

    A = csr_matrix((data, (rows, cols)), shape=(N, N))

    # Jacobi preconditioner
    M = diags(1.0 / A.diagonal(), 0, shape=(N, N), format="csr")

    guess = None if x0 is None else x0[1:-1, :].reshape(-1)
    x, info = _cg_solve(A, b, guess, M, rtol=rtol, maxiter=maxiter)
    if info != 0:
        logger.debug("CG stopped with info=%d, falling back to direct solve", info)
        x = spsolve(A.tocsc(), b)

    p = np.empty((n, m), dtype=np.float64)
    p[0, :] = 1.0
    p[-1, :] = 0.0
    p[1:-1, :] = np.asarray(x).reshape(n - 2, m)
    return p


def darcy_velocities(grid: PuckGrid, P: np.ndarray, mobility: np.ndarray):
    """
    v = -(k/mu) grad P.
    Axial: averaged from the conservative face fluxes around each node.
    Radial: central difference, zero on the axis (symmetry) and at the wall.
    Returns (v_r, v_z, face_flux_z).
    """
    Tz, _ = transmissibilities(grid, mobility)
    qz = Tz * (P[:-1, :] - P[1:, :])            # (rows-1, cols), downward positive
    vz_face = qz / grid.annular_areas[None, :]

    v_z = np.empty_like(P)
    v_z[0, :] = vz_face[0, :]
    v_z[-1, :] = vz_face[-1, :]
    v_z[1:-1, :] = 0.5 * (vz_face[:-1, :] + vz_face[1:, :])

    v_r = np.zeros_like(P)
    if grid.cols > 2:
        dPdr = (P[:, 2:] - P[:, :-2]) / (2.0 * grid.dr)
        v_r[:, 1:-1] = -mobility[:, 1:-1] * dPdr

    return v_r, v_z, qz


def _zero_solution(grid: PuckGrid, mu: float) -> FlowSolution:
    z = np.zeros(grid.shape, dtype=np.float64)
    return FlowSolution(
        P=z, v_r=z.copy(), v_z=z.copy(), mu_eff=np.full(grid.shape, mu),
        inflow=0.0, outflow=0.0, driving_pressure=0.0, iterations=0, converged=True,
    )


def solve_flow(
    params: SimulationParameters,
    grid: PuckGrid,
    medium: Medium,
    max_iters: int = cfg.MAX_OUTER_ITERS,
    rtol: float = cfg.PRESSURE_RTOL,
    relaxation: float = cfg.ERGUN_RELAXATION,
    ergun_weight: float = cfg.ERGUN_WEIGHT,
) -> FlowSolution:
    """
    Steady Darcy flow with an Ergun inertial correction, linearised by Picard
    iteration on the effective viscosity:
      solve P -> velocities -> mu_eff = mu (1 + w F_ergun) (under-relaxed) -> re-solve
    until both max |dP| < rtol * P_drive and max |d mu_eff| < rtol * mu, or
    max_iters is hit. Hitting the cap is not an error; the last field is
    returned with converged=False.
    """
    mu = water_viscosity(params.water_temp_c)
    drive = params.driving_pressure_pa
    if drive <= 0.0:
        return _zero_solution(grid, mu)

    k = medium.permeability.to_array()
    eps = medium.porosity.to_array()
    d = params.particle_diameter_m

    mu_eff = np.full(grid.shape, mu, dtype=np.float64)
    p_prev = None
    converged = False
    it = 0

    for it in range(1, max(1, max_iters) + 1):
        mu_used = mu_eff
        mobility = k / mu_used
        p = solve_pressure(grid, mobility, x0=p_prev)
        dp = math.inf if p_prev is None else float(np.max(np.abs(p - p_prev)))

        v_r, v_z, _ = darcy_velocities(grid, p * drive, mobility)
        speed = np.sqrt(v_r * v_r + v_z * v_z)
        target = mu * (1.0 + ergun_weight * ergun_inertial_factor(speed, d, eps, mu))
        dmu = float(np.max(np.abs(target - mu_used))) / mu

        logger.debug("outer iteration %d: max dp = %.3e, max dmu = %.3e", it, dp, dmu)
        # p can stall while mu_eff still moves (column-separable beds)
        if dp < rtol and dmu < rtol:
            converged = True
            break
        p_prev = p
        mu_eff = mu_used + relaxation * (target - mu_used)

    if not converged:
        logger.warning("flow solve did not converge in %d iterations; returning last field", max_iters)

    P = p * drive
    v_r, v_z, qz = darcy_velocities(grid, P, mobility)
    inflow = float(np.sum(qz[0, :]))
    outflow = float(np.sum(qz[-1, :]))

    assert np.all(np.isfinite(P)) and np.all(np.isfinite(v_z)) and np.all(np.isfinite(v_r))

    return FlowSolution(
        P=P, v_r=v_r, v_z=v_z, mu_eff=mu_used,
        inflow=inflow, outflow=outflow, driving_pressure=drive,
        iterations=it, converged=converged,
    )
