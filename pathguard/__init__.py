"""
PathGuardian - community hazard map for school and commute routes
"""

__version__ = "0.1.0"
