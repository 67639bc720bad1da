"""
Central configuration constants for forest simulations.

Defines default values, limits, and parameter menus used across
multiple modules.
"""

# ============================================================================
# Grid Configuration
# ============================================================================

# Trees along one edge of the square forest (25 -> 625 trees)
DEFAULT_TREES_PER_ROW = 25

# Canvas edge in pixels, used only to compute disk centres and radii
DEFAULT_CANVAS_SIZE = 500

# Label stored in a cell that holds no tree
VACANT = -1

# Colour reported for vacant cells and unknown species
VACANT_COLOR = "#ffffff"

# Neighbourhood is the 3x3 block centred on a cell (self + 8 toroidal neighbours)
NEIGHBORHOOD_SIZE = 9
NEIGHBORHOOD_CENTER = 4


# ============================================================================
# Driver Configuration
# ============================================================================

# Replacements per run_batch() call (tradeoff between patience and perspicuity)
BATCH_SIZE = 40

# Step ceiling; reaching it pauses the run, resume starts another stretch
MAX_STEPS = 500000


# ============================================================================
# Immigration Configuration
# ============================================================================

# A migrant every 100 steps by default
IMMIGRATION_INTERVAL_DEFAULT = 100

# Values selectable at runtime (slider menu)
IMMIGRATION_INTERVALS = (
    [10, 20, 30, 40, 50, 60, 70, 80, 90, 100]
    + [200, 300, 400, 500, 600, 700, 800, 900, 1000]
    + [2000, 3000, 4000, 5000, 6000, 7000, 8000, 9000, 10000]
)


# ============================================================================
# Resource Competition Configuration
# ============================================================================

# Total resource shared between the two species (split is a:total-a)
RESOURCE_TOTAL = 100

# Default split (50:50)
RESOURCE_SPLIT_DEFAULT = 50

# Fraction of the competitor's resource each species can use
POACHING_COEF_DEFAULT = 0.25

# Cap on rejected candidate draws per replacement before giving up
MAX_REJECTION_DRAWS = 100000


# ============================================================================
# Neighbourhood Exclusion Configuration
# ============================================================================

# Fewest species that guarantees some species is absent from any neighbourhood
SOCIALDX_MIN_SPECIES = NEIGHBORHOOD_SIZE + 1


# ============================================================================
# Timeline Configuration
# ============================================================================

# Steps between census snapshots when the timeline is enabled
TIMELINE_INTERVAL_DEFAULT = 1000


# ============================================================================
# Performance Configuration
# ============================================================================

# Batch timing window for rolling average
BATCH_TIME_WINDOW = 100  # Number of batches to average


# ============================================================================
# Variants
# ============================================================================

VARIANT_DRIFT = "drift"
VARIANT_IMMIGRATION = "immigration"
VARIANT_COEXIST = "coexist"
VARIANT_SOCIALDX = "socialdx"

VARIANTS = [VARIANT_DRIFT, VARIANT_IMMIGRATION, VARIANT_COEXIST, VARIANT_SOCIALDX]
