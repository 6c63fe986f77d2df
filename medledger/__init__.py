"""
MedLedger - owner-controlled health record access with an append-only audit trail.
"""

__version__ = "1.0.0"
