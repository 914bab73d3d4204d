"""
Map Visualization Module for PathGuardian

Renders hazard report markers into an interactive Folium map, with the
category palette, pending/approved styling, a legend and the selection
marker.
"""

import logging
from html import escape
from typing import Iterable, Optional

import folium
from folium.plugins import BeautifyIcon, MarkerCluster

from pathguard.core.constants import (
    CATEGORY_COLORS,
    CATEGORY_LABELS,
    DEFAULT_CENTER,
    DEFAULT_ZOOM,
)
from pathguard.core.geo_utils import LngLat, calculate_centroid
from pathguard.crowdsource.report_handler import HazardReport
from pathguard.map.markers import Marker
from pathguard.map.surface import SelectionMarker

logger = logging.getLogger(__name__)


def markers_for_reports(reports: Iterable[HazardReport]) -> list:
    """Build markers for reports, styling each by its own status."""
    return [Marker.for_report(r, is_pending=r.is_pending) for r in reports]


def _popup_html(marker: Marker) -> str:
    status = "審査中" if marker.is_pending else "承認済み"
    return f"""
    <div style="font-family: Arial; min-width: 200px;">
        <h4 style="margin: 0; color: {marker.color};">{escape(marker.title)}</h4>
        <hr style="margin: 5px 0;">
        <b>危険度:</b> {marker.severity} / 5<br>
        <b>状態:</b> {status}<br>
        <b>位置:</b> {marker.position.latitude:.5f}, {marker.position.longitude:.5f}
    </div>
    """


def _legend_html() -> str:
    rows = "".join(
        f'<span style="color: {CATEGORY_COLORS[c]};">●</span> {CATEGORY_LABELS[c]}<br>'
        for c in CATEGORY_COLORS
    )
    return f'''
    <div style="position: fixed; bottom: 30px; right: 30px;
                background-color: rgba(255,255,255,0.9); padding: 10px;
                border-radius: 5px; z-index: 9999; color: #111;">
        <b>危険の種類</b><br>
        {rows}
        <span style="opacity: 0.6;">●</span> 審査中
    </div>
    '''


def create_report_map(
    markers: Iterable[Marker],
    center: Optional[LngLat] = None,
    zoom: int = DEFAULT_ZOOM,
    selection: Optional[SelectionMarker] = None,
    cluster_markers: bool = False,
    show_legend: bool = True,
) -> folium.Map:
    """
    Create an interactive map with hazard report markers.

    Args:
        markers: Markers to draw
        center: Map center. Centroid of the markers if None, Tokyo when empty.
        zoom: Initial zoom level
        selection: Optional selection marker (report location being chosen)
        cluster_markers: Cluster markers when zoomed out
        show_legend: Add the category legend

    Returns:
        Folium Map object
    """
    markers = list(markers)

    if center is None:
        if markers:
            center = calculate_centroid(m.position for m in markers)
        else:
            center = LngLat(*DEFAULT_CENTER)

    report_map = folium.Map(location=center.to_latlon(), zoom_start=zoom, tiles=None)

    # Add tile layers
    folium.TileLayer(
        tiles="OpenStreetMap",
        name="Street",
    ).add_to(report_map)

    folium.TileLayer(
        tiles="CartoDB positron",
        name="Light",
        attr="CartoDB",
    ).add_to(report_map)

    folium.TileLayer(
        tiles="https://server.arcgisonline.com/ArcGIS/rest/services/World_Imagery/MapServer/tile/{z}/{y}/{x}",
        name="Satellite",
        attr="Esri",
    ).add_to(report_map)

    if cluster_markers:
        marker_group = MarkerCluster(name="Hazard Reports")
    else:
        marker_group = folium.FeatureGroup(name="Hazard Reports")

    for marker in markers:
        icon = BeautifyIcon(
            icon=marker.icon,
            icon_shape="marker",
            background_color=marker.color,
            border_color=marker.color,
            text_color="white",
        )
        folium.Marker(
            location=marker.position.to_latlon(),
            popup=folium.Popup(_popup_html(marker), max_width=300),
            tooltip=escape(marker.title),
            icon=icon,
            opacity=marker.opacity,
        ).add_to(marker_group)

    marker_group.add_to(report_map)

    if selection is not None:
        folium.Marker(
            location=selection.position.to_latlon(),
            icon=BeautifyIcon(
                icon="map-marker",
                icon_shape="marker",
                background_color=selection.color,
                border_color=selection.color,
                text_color="white",
            ),
            draggable=selection.draggable,
            tooltip="報告地点",
        ).add_to(report_map)

    if show_legend:
        report_map.get_root().html.add_child(folium.Element(_legend_html()))

    folium.LayerControl().add_to(report_map)

    logger.info(f"Report map created with {len(markers)} markers")
    return report_map

