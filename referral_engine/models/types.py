"""
Standard type definitions for database models.

Provides consistent types for monetary and rate fields across all models.
"""

from sqlalchemy import DECIMAL

# Standard money type for BV and income amounts
# Precision: 18 digits total, 8 after decimal point
# Range: up to 9,999,999,999.99999999
MoneyType = DECIMAL(18, 8)

# Rate stored as a fraction in [0, 1]
# Precision: 10 digits total, 8 after decimal point
# Suitable for: decayed level rates (e.g., 0.10000000, 0.00078125)
# Deeper decayed rates are truncated to 8 places and paid at the stored value
RateType = DECIMAL(10, 8)
