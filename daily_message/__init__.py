"""
Daily message presence check and alert delivery
"""

__version__ = "1.0.0"
