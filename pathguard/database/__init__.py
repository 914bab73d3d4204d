"""
Database module for PathGuardian
SQLAlchemy persistence for reports and user points
"""

from .connection import DatabaseConnection, init_db
from .models import Base, DangerReportRecord, UserPoints
from .repository import SqlPointsLedger, SqlReportStore

__all__ = [
    "DatabaseConnection",
    "init_db",
    "Base",
    "DangerReportRecord",
    "UserPoints",
    "SqlReportStore",
    "SqlPointsLedger",
]
