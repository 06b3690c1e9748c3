"""
Author Network Explorer Configuration
=====================================
All paths, palette, scales, force parameters and interaction timings in one place.
Change values here; every script reads from this file.
"""

import math
from pathlib import Path

# =============================================================
# PATHS
# =============================================================
DATA_DIR   = Path('./data')
OUTPUT_DIR = Path('./results')

# Sub-directories (created automatically)
FIGURES_DIR = OUTPUT_DIR / 'figures'

AUTHOR_NETWORK_PATH = DATA_DIR / 'author_network.json'

# Outputs
DEGREE_TABLE_PATH   = OUTPUT_DIR / 'degree_table.csv'
GRAPHML_PATH        = OUTPUT_DIR / 'author_network.graphml'
POSITIONS_PATH      = OUTPUT_DIR / 'layout_positions.json'
LAYOUT_SVG_PATH     = OUTPUT_DIR / 'author_network_layout.svg'
EXPLORER_HTML_PATH  = OUTPUT_DIR / 'author_explorer.html'

# =============================================================
# DRAWING SURFACE
# =============================================================
# "minX minY width height"; only width/height are read.
VIEWBOX = '0 0 960 600'

# Inner group offset below the slider bar.
INNER_OFFSET = (0, 50)

D3_CDN = 'https://cdnjs.cloudflare.com/ajax/libs/d3/7.8.5/d3.min.js'

# =============================================================
# SCALES & PALETTE
# =============================================================
RADIUS_RANGE = (3, 12)      # sqrt scale range for node radius (px)

TOP_N_COUNTRIES = 10
COUNTRY_PALETTE = [
    '#e41a1c', '#377eb8', '#4daf4a', '#984ea3', '#ff7f00',
    '#ffbf00', '#a65628', '#f781bf', '#000000', '#66c2a5',
]
FALLBACK_COLOR = '#cccccc'
LINK_COLOR     = 'grey'

# =============================================================
# FORCES
# =============================================================
COLLIDE_MULTIPLIER  = 2      # collision radius = node radius × this
CENTER_STRENGTH     = 0.1    # forceX / forceY pull toward origin
CHARGE_STRENGTH     = -100
CHARGE_DISTANCE_MAX = 300
LINK_DISTANCE       = 50
LINK_STRENGTH       = 0.3

# Slider rebuilds replace charge and link with plain forces:
# no charge cap and the solver's default link distance
REBUILD_CHARGE_DISTANCE_MAX = math.inf
REBUILD_LINK_DISTANCE       = 30

# Energy schedule (alpha)
ALPHA_MIN      = 0.001
ALPHA_DECAY    = 1 - ALPHA_MIN ** (1 / 300)
VELOCITY_DECAY = 0.6         # fraction of velocity kept per tick

LAYOUT_SEED = 42             # jiggle randomness for coincident nodes

# =============================================================
# INTERACTION
# =============================================================
FRAME_MS = 1000 / 60         # one animation frame

HOVER_OPACITY  = 1.0
DIMMED_OPACITY = 0.2

DRAG_ALPHA_TARGET = 0.3
RELAX_DELAY_MS    = 3000     # slider idle time before motion damps out

TOOLTIP_OFFSET      = (5, -28)
TOOLTIP_SIZE        = (240, 160)  # foreignObject width, height
TOOLTIP_OPACITY     = 0.9
TOOLTIP_FADE_IN_MS  = 200
TOOLTIP_HOLD_MS     = 3000   # fade-out starts at this mark
TOOLTIP_FADE_OUT_MS = 500
NO_TITLES_TEXT      = 'No titles available'

ZOOM_EXTENT = (0.5, 5)

# =============================================================
# SLIDERS
# =============================================================
# Collision slider is divided by this before scaling node radius,
# so the default of 24 reproduces COLLIDE_MULTIPLIER.
COLLISION_SLIDER_DIVISOR = 12

SLIDERS = {
    'chargeStrength':  {'label': 'Repulsion',        'min': -300, 'max': 0,  'step': 5,    'value': CHARGE_STRENGTH},
    'collisionRadius': {'label': 'Collision radius', 'min': 0,    'max': 60, 'step': 1,    'value': 24},
    'linkStrength':    {'label': 'Link strength',    'min': 0,    'max': 1,  'step': 0.05, 'value': LINK_STRENGTH},
}


# =============================================================
# HELPERS
# =============================================================

def slider_defaults():
    """Return {control_id: default value} for the three physics sliders."""
    return {name: slider['value'] for name, slider in SLIDERS.items()}


def ensure_dirs():
    """Create all output directories."""
    for d in [OUTPUT_DIR, FIGURES_DIR]:
        d.mkdir(parents=True, exist_ok=True)
