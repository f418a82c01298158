"""
Engine services.
"""

from referral_engine.services.compensation_engine import CompensationEngine


__all__ = ["CompensationEngine"]
