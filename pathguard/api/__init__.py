"""
REST API for PathGuardian
"""
