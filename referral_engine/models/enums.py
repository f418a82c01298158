"""
Model enumerations.
"""

from enum import StrEnum

from referral_engine.config.business_constants import (
    POSITION_LEFT,
    POSITION_RIGHT,
)


class Position(StrEnum):
    """Slot a member occupies under its parent."""

    LEFT = POSITION_LEFT
    RIGHT = POSITION_RIGHT
