from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Tuple

from puck_sim.grid import Field, Index2D


class FieldMode(str, Enum):
    """Rendering modes; each picks one normalized field of a SimulationResult."""
    PRESSURE = "pressure"
    FLOW = "flow"
    EXTRACTION = "extraction"
    PERMEABILITY = "permeability"
    RESIDENCE_TIME = "residence_time"


@dataclass(frozen=True, slots=True)
class PuckCell:
    porosity: float
    permeability: float    # m^2
    pressure: float        # Pa, gauge
    velocity_r: float      # m/s, outward
    velocity_z: float      # m/s, downward
    flow_magnitude: float  # m/s
    extraction: float      # 0-1
    residence_time: float  # s


@dataclass(frozen=True, slots=True, eq=False)
class CellGrid:
    """Raw per-cell fields in physical units, for vector/velocity consumers."""
    porosity: Field
    permeability: Field
    pressure: Field
    velocity_r: Field
    velocity_z: Field
    flow_magnitude: Field
    extraction: Field
    residence_time: Field

    def cell(self, row: int, col: int) -> PuckCell:
        return PuckCell(
            porosity=self.porosity.at(row, col),
            permeability=self.permeability.at(row, col),
            pressure=self.pressure.at(row, col),
            velocity_r=self.velocity_r.at(row, col),
            velocity_z=self.velocity_z.at(row, col),
            flow_magnitude=self.flow_magnitude.at(row, col),
            extraction=self.extraction.at(row, col),
            residence_time=self.residence_time.at(row, col),
        )


@dataclass(frozen=True, slots=True, eq=False)
class SimulationResult:
    """
    Output of one simulate() call. Never patched; a parameter change produces
    a new result.
    pressure/velocity/permeability/residence_time fields are scaled by their own
    max for the run; extraction is already in [0, 1].
    """
    rows: int
    cols: int

    pressure_field: Field
    velocity_field: Field
    extraction_field: Field
    residence_time_field: Field
    permeability_field: Field

    cells: CellGrid

    total_flow_rate: float       # ml/s through the basket screen
    channeling_risk: float       # 0-1
    uniformity_index: float      # 0-1
    effective_shot_time: float   # s to reach the target yield
    channel_locations: Tuple[Index2D, ...]  # (row, col)

    average_pressure_drop_bar: float
    puck_height_mm: float
    inflow_rate: float           # ml/s through the inlet face
    solver_iterations: int
    converged: bool
    fingerprint: str

    def cell(self, row: int, col: int) -> PuckCell:
        return self.cells.cell(row, col)

    def field(self, mode: FieldMode) -> Field:
        mode = FieldMode(mode)
        if mode is FieldMode.PRESSURE:
            return self.pressure_field
        if mode is FieldMode.FLOW:
            return self.velocity_field
        if mode is FieldMode.EXTRACTION:
            return self.extraction_field
        if mode is FieldMode.PERMEABILITY:
            return self.permeability_field
        return self.residence_time_field
