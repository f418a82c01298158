"""
Input validators.
"""

from referral_engine.validators.common import (
    clamp_depth,
    normalize_percentage,
    normalize_referral_code,
    validate_bv,
)


__all__ = [
    "clamp_depth",
    "normalize_percentage",
    "normalize_referral_code",
    "validate_bv",
]
