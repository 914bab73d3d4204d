"""
PathGuardian - Constants and Reference Data
Static values used throughout the application.
"""

from typing import Dict, List, Tuple

# =============================================================================
# HAZARD CATEGORIES
# =============================================================================

HAZARD_CATEGORIES: List[str] = ["traffic", "crime", "disaster", "other"]

CATEGORY_LABELS: Dict[str, str] = {
    "traffic": "交通危険",
    "crime": "犯罪危険",
    "disaster": "災害危険",
    "other": "その他",
}

# Marker background color per category
CATEGORY_COLORS: Dict[str, str] = {
    "traffic": "#3b82f6",   # blue-500
    "crime": "#ef4444",     # red-500
    "disaster": "#facc15",  # yellow-400
    "other": "#6b7280",     # gray-500
}

# Font Awesome icon names used inside markers
CATEGORY_ICONS: Dict[str, str] = {
    "traffic": "car",
    "crime": "shield",
    "disaster": "exclamation-triangle",
    "other": "question-circle",
}

DEFAULT_CATEGORY_COLOR = "#6b7280"
DEFAULT_CATEGORY_ICON = "question-circle"

# =============================================================================
# SEVERITY
# =============================================================================

MIN_SEVERITY = 1
MAX_SEVERITY = 5

SEVERITY_COLORS: Dict[int, str] = {
    1: "#4ade80",
    2: "#a3e635",
    3: "#facc15",
    4: "#fb923c",
    5: "#f87171",
}

DEFAULT_SEVERITY_COLOR = "#94a3b8"

# =============================================================================
# MARKER STYLES
# =============================================================================

APPROVED_MARKER_OPACITY = 1.0
PENDING_MARKER_OPACITY = 0.6

SELECTION_MARKER_COLOR = "#3b82f6"
SUBMITTED_MARKER_COLOR = "#22c55e"

# =============================================================================
# MAP DEFAULTS
# =============================================================================

# Tokyo (longitude, latitude)
DEFAULT_CENTER: Tuple[float, float] = (139.6917, 35.6895)
DEFAULT_ZOOM = 12
FLY_TO_ZOOM = 15

MAP_STYLES: List[str] = [
    "streets-v12",
    "outdoors-v12",
    "light-v11",
    "dark-v11",
    "satellite-v9",
    "satellite-streets-v12",
]

# Width at or below which the device is treated as touch-primary (md breakpoint)
MOBILE_BREAKPOINT_PX = 768

# 3D terrain
TERRAIN_SOURCE_ID = "mapbox-dem"
TERRAIN_SOURCE: Dict[str, object] = {
    "type": "raster-dem",
    "url": "mapbox://mapbox.mapbox-terrain-dem-v1",
    "tileSize": 512,
    "maxzoom": 14,
}
TERRAIN_EXAGGERATION = 1.5

SKY_LAYER_ID = "sky"
SKY_LAYER: Dict[str, object] = {
    "id": SKY_LAYER_ID,
    "type": "sky",
    "paint": {
        "sky-type": "atmosphere",
        "sky-atmosphere-sun": [0.0, 0.0],
        "sky-atmosphere-sun-intensity": 15,
    },
}

PITCH_3D = 60
BEARING_3D = 30

# =============================================================================
# FILTERS
# =============================================================================

FILTER_ALL = "all"
DATE_RANGES: List[str] = ["all", "week", "month", "year"]

# =============================================================================
# MEDIA
# =============================================================================

MAX_IMAGE_BYTES = 10 * 1024 * 1024
IMAGE_KINDS: List[str] = ["original", "processed"]

# =============================================================================
# GAMIFICATION
# =============================================================================

POINTS_REPORT_SUBMITTED = 20
POINTS_MARKER_VIEWED = 5
