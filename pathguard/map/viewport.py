"""
Map viewport: camera, base style and 3D terrain

Layer and source mutations go through LayerRegistry, whose ensure_* calls
are idempotent, so callers never check for existence themselves.
"""

import copy
import logging
from typing import Any, Dict, Optional

from pathguard.core.config import settings
from pathguard.core.constants import (
    BEARING_3D,
    DEFAULT_CENTER,
    DEFAULT_ZOOM,
    FLY_TO_ZOOM,
    MAP_STYLES,
    PITCH_3D,
    SKY_LAYER,
    SKY_LAYER_ID,
    TERRAIN_EXAGGERATION,
    TERRAIN_SOURCE,
    TERRAIN_SOURCE_ID,
)
from pathguard.core.geo_utils import LngLat

logger = logging.getLogger(__name__)

STYLE_URL_PREFIX = "mapbox://styles/mapbox/"


class LayerRegistry:
    """Sources, layers and terrain owned by the current map style."""

    def __init__(self):
        self.sources: Dict[str, Dict[str, Any]] = {}
        self.layers: Dict[str, Dict[str, Any]] = {}
        self.terrain: Optional[Dict[str, Any]] = None

    def has_source(self, source_id: str) -> bool:
        return source_id in self.sources

    def has_layer(self, layer_id: str) -> bool:
        return layer_id in self.layers

    def ensure_source(self, source_id: str, spec: Dict[str, Any]) -> bool:
        """Add a source unless it exists. Returns True if it was added."""
        if source_id in self.sources:
            return False
        self.sources[source_id] = copy.deepcopy(spec)
        return True

    def ensure_layer(self, spec: Dict[str, Any]) -> bool:
        """Add a layer (keyed by its ``id``) unless it exists. Returns True if it was added."""
        layer_id = spec["id"]
        if layer_id in self.layers:
            return False
        self.layers[layer_id] = copy.deepcopy(spec)
        return True

    def remove_layer(self, layer_id: str) -> bool:
        return self.layers.pop(layer_id, None) is not None

    def remove_source(self, source_id: str) -> bool:
        return self.sources.pop(source_id, None) is not None

    def set_terrain(self, spec: Optional[Dict[str, Any]]) -> None:
        self.terrain = copy.deepcopy(spec) if spec else None

    def clear(self) -> None:
        """Drop everything, as a style reload does."""
        self.sources.clear()
        self.layers.clear()
        self.terrain = None


class MapViewport:
    """
    Camera and style state of the interactive map.

    Usage:
        viewport = MapViewport()
        viewport.toggle_3d()
        viewport.set_style("satellite-streets-v12")  # 3D is re-applied
    """

    def __init__(
        self,
        center: Optional[LngLat] = None,
        zoom: float = DEFAULT_ZOOM,
        style: Optional[str] = None,
        registry: Optional[LayerRegistry] = None
    ):
        self.center = center or LngLat(*DEFAULT_CENTER)
        self.zoom = zoom
        self.pitch = 0.0
        self.bearing = 0.0
        self.is_3d = False
        self.style = self._check_style(style or settings.map_default_style)
        self.registry = registry or LayerRegistry()

    @staticmethod
    def _check_style(style: str) -> str:
        if style not in MAP_STYLES:
            raise ValueError(f"Unknown map style: {style}")
        return style

    @property
    def style_url(self) -> str:
        return f"{STYLE_URL_PREFIX}{self.style}"

    def get_center(self) -> LngLat:
        return self.center

    def move_to(self, center: LngLat, zoom: Optional[float] = None) -> None:
        """Update the camera after the user panned or zoomed."""
        self.center = center
        if zoom is not None:
            self.zoom = zoom

    def fly_to(self, position: LngLat, zoom: float = FLY_TO_ZOOM) -> None:
        self.center = position
        self.zoom = zoom
        logger.debug(f"Flying to {position} at zoom {zoom}")

    def toggle_3d(self, enabled: Optional[bool] = None) -> bool:
        """
        Switch 3D terrain on or off.

        Args:
            enabled: Target state; flips the current state when omitted

        Returns:
            The new state
        """
        self.is_3d = (not self.is_3d) if enabled is None else enabled

        if self.is_3d:
            self._apply_3d()
        else:
            self._remove_3d()

        logger.info(f"3D terrain {'enabled' if self.is_3d else 'disabled'}")
        return self.is_3d

    def set_style(self, style: str) -> None:
        """Load a new base style; style-owned layers are dropped and 3D re-applied."""
        self.style = self._check_style(style)
        self.registry.clear()

        if self.is_3d:
            self._apply_3d()

        logger.info(f"Map style changed to {style}")

    def _apply_3d(self) -> None:
        self.registry.ensure_source(TERRAIN_SOURCE_ID, TERRAIN_SOURCE)
        self.registry.set_terrain({"source": TERRAIN_SOURCE_ID, "exaggeration": TERRAIN_EXAGGERATION})
        self.registry.ensure_layer(SKY_LAYER)
        self.pitch = PITCH_3D
        self.bearing = BEARING_3D

    def _remove_3d(self) -> None:
        self.registry.set_terrain(None)
        self.registry.remove_layer(SKY_LAYER_ID)
        self.pitch = 0.0
        self.bearing = 0.0

    def to_dict(self) -> Dict[str, Any]:
        """Camera and style options for initializing a map client."""
        return {
            "style": self.style_url,
            "center": list(self.center),
            "zoom": self.zoom,
            "pitch": self.pitch,
            "bearing": self.bearing,
            "terrain": copy.deepcopy(self.registry.terrain),
            "sources": copy.deepcopy(self.registry.sources),
            "layers": list(copy.deepcopy(self.registry.layers).values()),
        }
