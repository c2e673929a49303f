from decimal import Decimal, InvalidOperation, ROUND_HALF_UP

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


def parse_money(value) -> Decimal:
    """Parse a fixed-point amount (str, int or Decimal) into a Decimal.

    Floats are rejected: amounts travel as decimal strings so repeated
    aggregation does not drift. NaN and infinities are rejected too.
    """
    if value is None:
        raise ValueError("missing money value")
    if isinstance(value, Decimal):
        return _require_finite(value)
    if isinstance(value, bool) or isinstance(value, float):
        raise ValueError("money values must be decimal strings, not floats")
    if isinstance(value, int):
        return Decimal(value)

    normalized = str(value).strip()
    if not normalized:
        raise ValueError("empty money value")

    is_negative = normalized.startswith("(") and normalized.endswith(")")
    normalized = normalized.replace("$", "").replace(",", "")
    if is_negative:
        normalized = normalized[1:-1]

    try:
        amount = _require_finite(Decimal(normalized))
    except InvalidOperation as exc:
        raise ValueError("invalid money value") from exc

    return -amount if is_negative else amount


def _require_finite(amount: Decimal) -> Decimal:
    if not amount.is_finite():
        raise ValueError(f"money values must be finite, got {amount}")
    return amount


def quantize(amount: Decimal) -> Decimal:
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_db(amount: Decimal | None) -> str | None:
    """Fixed-point text for storage."""
    if amount is None:
        return None
    return str(quantize(amount))


def from_db(value) -> Decimal | None:
    if value is None:
        return None
    return Decimal(str(value))


def format_currency(amount: Decimal, symbol: str = "$") -> str:
    """Format an amount as currency string, e.g. '$1,234.56'."""
    return f"{symbol}{quantize(amount):,.2f}"
