# discretization
MIN_GRID = 20
RADIAL_CELL_MM = 1.45   # radial cell width used to scale cols with basket size
AXIAL_NODES_PER_MM = 1.28

# porosity model
POROSITY_LOOSE = 0.46       # loosely packed, dry grounds
TAMP_POROSITY_DROP = 0.10   # max reduction from tamping
TAMP_SCALE_KG = 12.0        # exp decay constant -> diminishing returns above ~15 kg
MOISTURE_SWELLING = 0.15
DENSITY_REFERENCE = 1.15    # g/cm^3
DENSITY_PACKING = 0.20
POROSITY_MIN = 0.25
POROSITY_MAX = 0.55
POROSITY_EPS = 1e-3         # open-interval guard for Kozeny-Carman

# wall effect
WALL_BAND = 0.10            # outer fraction of the radius
WALL_BOOST_MIN = 0.15       # perfect distribution
WALL_BOOST_MAX = 0.25       # worst distribution
DISTRIBUTION_QUALITY_MIN = 0.3

# fines migration
FINES_DEPTH = 0.30          # bottom fraction of the rows
FINES_REDUCTION = 0.20      # permeability loss at the exit row

# distribution noise (porosity, scaled by 1 - quality)
STREAK_AMPLITUDE = 0.05
CELL_AMPLITUDE = 0.02

# permeability calibration (fines + swelling vs. nominal grind)
PERMEABILITY_SCALE = 1.5e-5

# fluid
WATER_DENSITY = 1000.0      # kg/m^3

# flow solver
ERGUN_WEIGHT = 1.0
ERGUN_RELAXATION = 0.7
MAX_OUTER_ITERS = 25
PRESSURE_RTOL = 1e-3        # of the driving pressure
CG_RTOL = 1e-10
CG_MAXITER = 4000

# metrics
CHANNEL_THRESHOLD = 2.0     # multiple of the row-mean axial velocity
CV_SATURATION = 1.0
BREW_RATIO = 2.0
SHOT_TIME_CAP_S = 120.0
MIN_FLOW_ML_S = 1e-6
EXPOSURE_FLOOR = 0.5        # exit row exposure weight relative to the inlet row

# accepted input ranges, enforced by SimulationParameters.clamped()
PARAM_RANGES = {
    "grind_size_microns": (200.0, 800.0),
    "dose_grams": (5.0, 25.0),
    "tamp_pressure_kg": (5.0, 30.0),
    "brew_pressure_bar": (1.0, 12.0),
    "water_temp_c": (70.0, 100.0),
    "bean_density": (1.05, 1.25),
    "moisture_content": (0.02, 0.18),
    "distribution_quality": (DISTRIBUTION_QUALITY_MIN, 1.0),
}
