"""
Gamification: points awarded for reporting and viewing hazards
"""

from .points import PointsLedger

__all__ = ["PointsLedger"]
