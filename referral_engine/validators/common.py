"""
Common validators for engine input.

Each validator returns a tuple of (is_valid, parsed_value, error_message).
"""

from decimal import Decimal, InvalidOperation

from referral_engine.config.business_constants import (
    MAX_BV,
    MONEY_QUANTUM,
    PERCENTAGE_INPUT_THRESHOLD,
    RATE_QUANTUM,
    REFERRAL_CODE_MAX_LENGTH,
)


def _to_decimal(value: object) -> Decimal | None:
    """Convert int/str/Decimal/float to Decimal, None if impossible."""
    if isinstance(value, bool):
        return None
    if isinstance(value, float):
        # str() keeps the literal the caller typed (0.1 -> "0.1")
        value = str(value)
    try:
        result = Decimal(value)  # type: ignore[arg-type]
    except (InvalidOperation, TypeError, ValueError):
        return None
    if not result.is_finite():
        return None
    return result


def normalize_percentage(
    value: object,
) -> tuple[bool, Decimal | None, str | None]:
    """
    Normalize an admin-entered level-1 percentage to a fraction.

    Values above 1 are read as whole-number percentages and divided by 100;
    values already in [0, 1] are kept.

    Args:
        value: Raw percentage (int, str, Decimal or float)

    Returns:
        Tuple of (is_valid, fraction, error_message)

    Examples:
        >>> normalize_percentage("10")
        (True, Decimal('0.10000000'), None)
        >>> normalize_percentage("0.1")
        (True, Decimal('0.10000000'), None)
        >>> normalize_percentage("-5")
        (False, None, 'basePercentage must be between 0 and 1')
    """
    amount = _to_decimal(value)
    if amount is None:
        return False, None, "basePercentage must be a number"

    if amount > PERCENTAGE_INPUT_THRESHOLD:
        amount = amount / Decimal("100")

    if amount < 0 or amount > 1:
        return False, None, "basePercentage must be between 0 and 1"

    return True, amount.quantize(RATE_QUANTUM), None


def validate_bv(value: object) -> tuple[bool, Decimal | None, str | None]:
    """
    Validate a captured Business Volume.

    Args:
        value: Raw BV

    Returns:
        Tuple of (is_valid, bv, error_message)
    """
    amount = _to_decimal(value)
    if amount is None:
        return False, None, "BV must be a number"

    if amount < 0:
        return False, None, "BV cannot be negative"

    if amount > MAX_BV:
        return False, None, "BV is out of range"

    try:
        quantized = amount.quantize(MONEY_QUANTUM)
    except InvalidOperation:
        return False, None, "BV is out of range"

    if quantized != amount:
        return False, None, "BV has more than 8 decimal places"

    return True, quantized, None


def normalize_referral_code(
    value: str | None,
) -> tuple[bool, str | None, str | None]:
    """
    Trim a referral code typed by a registering member.

    Args:
        value: Raw code; blank means "no sponsor"

    Returns:
        Tuple of (is_valid, code_or_none, error_message)

    Examples:
        >>> normalize_referral_code("  abc123 ")
        (True, 'abc123', None)
        >>> normalize_referral_code("   ")
        (True, None, None)
    """
    if value is None:
        return True, None, None

    if not isinstance(value, str):
        return False, None, "Referral code must be a string"

    code = value.strip()
    if not code:
        return True, None, None

    if len(code) > REFERRAL_CODE_MAX_LENGTH:
        return False, None, "Referral code is too long"

    return True, code, None


def clamp_depth(requested: object, minimum: int, maximum: int, default: int) -> int:
    """
    Clamp a requested tree depth into [minimum, maximum].

    Non-numeric input falls back to the default instead of failing.
    """
    try:
        depth = int(requested)  # type: ignore[call-overload]
    except (TypeError, ValueError, OverflowError):
        depth = default
    return min(max(depth, minimum), maximum)
