"""
Visualization module for PathGuardian
"""

from .map_generator import create_report_map, markers_for_reports

__all__ = ["create_report_map", "markers_for_reports"]
