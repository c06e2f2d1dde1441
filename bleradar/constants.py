"""
Hard-coded colours, geometry ratios, GATT UUIDs & fonts so every module can
import them without circular dependencies.
"""
from pathlib import Path
import pygame

# -------- colours --------
BLACK = (0, 0, 0)
RADAR_GREEN = (98, 245, 31)          # arcs, spokes, labels
SWEEP_GREEN = (30, 250, 60)          # scanning line
WEDGE_RED   = (255, 10, 10)          # retained samples
DIM, RED    = (0, 90, 0), (255, 0, 0)

# -------- strokes --------
RADAR_STROKE = 2
SWEEP_STROKE = 9

# -------- scan window / display ceiling --------
TRAIL_WINDOW      = 30               # degrees kept around the sweep angle
MAX_DISTANCE      = 30               # cm mapped onto the outer radius
ANGLE_WEDGE_WIDTH = 3                # degrees per filled wedge
SPOKE_ANGLES      = (30, 60, 90, 120, 150)

# -------- layout ratios (fractions of the radar view) --------
RADIUS_MARGIN  = 0.0625              # R = (w - w*0.0625) / 2
CENTER_LIFT    = 0.074               # center y = h - h*0.074
SWEEP_SHORTEN  = 0.12                # L = h - h*0.12
TEXT_X         = 50
ANGLE_TEXT_UP  = 50                  # baseline offsets from the bottom edge
DIST_TEXT_UP   = 100

# -------- GATT layout of the radar peripheral --------
SERVICE_UUID   = "51311102-030e-485f-b122-f8f381aa84ed"
ANGLE_UUID     = "485f4145-52b9-4644-af1f-7a6b9322490f"
DISTANCE_UUID  = "0a924ca7-87cd-4699-a3bd-abdcd9cf126a"
RUNNING_UUID   = "8dd6a1b7-bc75-4741-8a26-264af75807de"
THRESHOLD_UUID = "beb5483e-36e1-4688-b7f5-ea07361b26a8"

# -------- fonts --------
pygame.font.init()
TEXT_SIZE  = 40
FONT       = pygame.font.Font(None, TEXT_SIZE)
SMALL_FONT = pygame.font.Font(None, 24)
BIG_FONT   = pygame.font.Font(None, 64)

# -------- control panel (below the radar view) --------
PANEL_H = 110

# -------- dirs --------
ROOT     = Path(__file__).resolve().parent.parent
CFG_PATH = ROOT / "radar_config.json"
