"""
Business constants.

Single source of truth for compensation arithmetic and tree shape.
"""

from decimal import Decimal

# ========================================================================
# BINARY TREE
# ========================================================================

POSITION_LEFT = "left"
POSITION_RIGHT = "right"

# Slot check order at every visited node
PLACEMENT_SLOT_ORDER = (POSITION_LEFT, POSITION_RIGHT)

# ========================================================================
# BV DISTRIBUTION
# ========================================================================

# Level n rate = base_percentage * DECAY_FACTOR ** (n - 1)
DECAY_FACTOR = Decimal("0.5")

# Storage precision for money columns: DECIMAL(18, 8)
MONEY_QUANTUM = Decimal("0.00000001")

# Largest BV a DECIMAL(18, 8) column holds
MAX_BV = Decimal("9999999999.99999999")

# Storage precision for rate columns: DECIMAL(10, 8)
RATE_QUANTUM = Decimal("0.00000001")

# Admin input above this is read as a whole-number percentage ("10" -> 0.10)
PERCENTAGE_INPUT_THRESHOLD = Decimal("1")

# ========================================================================
# REFERRAL CODES
# ========================================================================

REFERRAL_CODE_BYTES = 8
REFERRAL_CODE_MAX_LENGTH = 20

# ========================================================================
# LEDGER QUERIES
# ========================================================================

DEFAULT_INCOME_PAGE_SIZE = 100
DEFAULT_PURCHASE_PAGE_SIZE = 50
DEFAULT_RECENT_RULES = 10
