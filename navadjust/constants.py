# -*- coding: utf-8 -*-
"""Constants used throughout the navadjust library.

This module centralizes all constant values to ensure consistency
and avoid magic numbers scattered across the codebase.
"""

# -----------------------------------------------------------------------------
# Encodings
# -----------------------------------------------------------------------------

#: Encoding used for JSON project files and GeoJSON output
JSON_ENCODING = "utf-8"

# -----------------------------------------------------------------------------
# Navigation samples
# -----------------------------------------------------------------------------

#: Number of representative navigation samples ("snav" points) per section
SNAV_NUM: int = 11

#: Maximum number of ties on a single crossing (one per sample pair)
MAX_TIES_PER_CROSSING: int = SNAV_NUM

#: Sections per chunk in the chunk-relaxation stage
CHUNK_SECTIONS: int = 10

# -----------------------------------------------------------------------------
# Uncertainty
# -----------------------------------------------------------------------------

#: Floor for the horizontal uncertainty magnitudes (metres)
SIGMA_SMALL: float = 0.1

#: Floor for the quasi-vertical uncertainty magnitude (metres)
SIGMA_ZSMALL: float = 0.005

#: Isotropic sigma marking an uncertainty that was never estimated (metres)
SIGMA_UNSET: float = 100.0

# -----------------------------------------------------------------------------
# Crossings
# -----------------------------------------------------------------------------

#: Overlap percentage at or above which a crossing counts as "good"
GOOD_OVERLAP_THRESHOLD: int = 25

#: Default swath width used to build section footprints (metres)
DEFAULT_SWATH_WIDTH: float = 500.0

# -----------------------------------------------------------------------------
# Misfit correlation
# -----------------------------------------------------------------------------

#: Cells per side of the averaged-depth grids
MISFIT_GRID_DIM: int = 81

#: Number of vertical offset candidates in the misfit volume
MISFIT_NZ: int = 41

#: Overlap-cell count a misfit volume cell must exceed to be a candidate
MISFIT_MIN_DENSITY: int = 100

#: Factor by which the density threshold is relaxed when nothing passes
MISFIT_DENSITY_RELAXATION: float = 10.0

#: Misfit multiple of the minimum delimiting the uncertainty region
MISFIT_UNCERTAINTY_FACTOR: float = 3.0

#: Cosine a cell direction must exceed to count along axis 2 or axis 3
MISFIT_AXIS_COSINE: float = 0.8

#: Number of histogram-equalization intervals for the misfit volume
MISFIT_NUM_INTERVALS: int = 20

#: Default half-width of the vertical offset search (metres)
DEFAULT_ZOFFSET_WIDTH: float = 5.0

# -----------------------------------------------------------------------------
# Auto-pick
# -----------------------------------------------------------------------------

#: Largest accepted ratio of sigma1 to the overlap extent
AUTOPICK_SIGMA_RATIO: float = 0.5

#: Minimum crossing overlap percentage considered by the auto-picker
AUTOPICK_MIN_OVERLAP: int = 25

# -----------------------------------------------------------------------------
# Inversion
# -----------------------------------------------------------------------------

#: Default smoothing exponent (weights scale with 10 ** smoothing)
DEFAULT_SMOOTHING: float = 2.0

#: Default nominal section length (metres)
DEFAULT_SECTION_LENGTH: float = 1000.0

#: Analyzed crossings that allow an inversion before every true crossing is analyzed
MIN_ANALYZED_CROSSINGS: int = 10

#: Weight of the per-survey anchor rows in the block-average stage
BLOCK_ANCHOR_WEIGHT: float = 1000.0

#: Weight of the equality rows pinning fixed files to zero offset
FIXED_FILE_WEIGHT: float = 1000.0

#: Weight multiplier for ties in a fixed status
FIXED_TIE_WEIGHT: float = 10.0

#: Extra weight of vertical smoothing rows
SMOOTHING_Z_FACTOR: float = 10.0

#: Smoothing weight multiplier for rows touching a poor-navigation sample
SMOOTHING_POOR_FACTOR: float = 0.25

#: Smallest time step used in smoothing weights (seconds)
SMOOTHING_MIN_DT: float = 1.0

#: Damping factor applied to chunk corrections
CHUNK_DAMPING: float = 0.5

#: Blend factor towards neighbouring chunk corrections
CHUNK_CONTINUITY: float = 0.25

#: Fractional misfit improvement below which chunk relaxation stops
CHUNK_CONVERGENCE: float = 1.0e-4

#: Iteration cap for chunk relaxation
CHUNK_MAX_ITERATIONS: int = 200

#: LSQR tolerances and iteration cap
LSQR_ATOL: float = 1.0e-10
LSQR_BTOL: float = 1.0e-10
LSQR_ITER_LIM: int = 10000

#: Solved offsets beyond this magnitude are discarded (metres)
OFFSET_SANITY_LIMIT: float = 10000.0

# -----------------------------------------------------------------------------
# Persistence
# -----------------------------------------------------------------------------

#: Number of edits after which the project is saved
DEFAULT_SAVE_INTERVAL: int = 10

# -----------------------------------------------------------------------------
# GeoJSON
# -----------------------------------------------------------------------------

#: Decimal precision for GeoJSON coordinates (WGS84)
GEOJSON_COORDINATE_PRECISION: int = 7
