"""
DriveLink account backend.

Car owners, their relatives, and the owner ↔ relative relationship graph.
"""

__version__ = "0.1.0"
