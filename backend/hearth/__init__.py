"""
Hearth: per-household data access and protection layer
"""

__version__ = "1.0.0"
