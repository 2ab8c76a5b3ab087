"""
API schemas.
"""
