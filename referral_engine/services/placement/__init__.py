"""
Binary placement: slot search and member registration.
"""

from referral_engine.services.placement.registration import (
    MemberRegistrationService,
    RegistrationResult,
)
from referral_engine.services.placement.resolver import (
    BinaryPlacementResolver,
    Placement,
)


__all__ = [
    "BinaryPlacementResolver",
    "MemberRegistrationService",
    "Placement",
    "RegistrationResult",
]
