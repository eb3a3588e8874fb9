"""Amount text parsing and display formatting (Indian numbering)."""

from __future__ import annotations

import logging
import math
import re
from decimal import ROUND_HALF_UP, Decimal
from typing import Literal, Union

logger = logging.getLogger(__name__)

CURRENCY_SYMBOL = "₹"
LAKH = 100_000
CRORE = 10_000_000

_NUMBER_TOKEN = re.compile(r"\d+(?:\.\d*)?|\.\d+")

AmountStyle = Literal["numeric", "text"]


def parse_amount(value: Union[str, float, int, None]) -> float:
    """Turn user supplied amount text into a plain number.

    Text such as ``"Above ₹1.00 Lakh upto ₹5.00 Lakh"`` resolves to the last
    numeric token scaled by the magnitude word (``5.00 * 1 Lakh``). Grouping
    commas are ignored. Text without digits parses to ``0.0``.
    """
    if value is None or value == "":
        return 0.0
    if not isinstance(value, str):
        return float(value)

    tokens = _NUMBER_TOKEN.findall(value.replace(",", ""))
    amount = float(tokens[-1]) if tokens else 0.0

    lowered = value.lower()
    if "lakh" in lowered:
        amount *= LAKH
    elif "crore" in lowered:
        amount *= CRORE

    logger.debug(f"parsed amount text {value!r} as {amount}")
    return amount


def _round_half_up(value: float) -> Decimal:
    return Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _group_indian(digits: str) -> str:
    # Last three digits form one group, everything before groups in pairs.
    if len(digits) <= 3:
        return digits
    head, tail = digits[:-3], digits[-3:]
    pairs = []
    while len(head) > 2:
        pairs.insert(0, head[-2:])
        head = head[:-2]
    if head:
        pairs.insert(0, head)
    return ",".join(pairs + [tail])


def format_amount(value: float, style: AmountStyle = "numeric") -> str:
    """Render an amount for display.

    ``numeric`` gives Indian digit grouping with two decimals
    (``12,34,567.89``); ``text`` gives ``₹1.50 Lakh`` / ``₹2.00 Crore`` style.
    An unbounded amount renders as ``"Above"``.
    """
    if value is None or (isinstance(value, float) and math.isinf(value) and value > 0):
        return "Above"
    if isinstance(value, float) and not math.isfinite(value):
        return str(value)

    rounded = _round_half_up(float(value))

    if style == "text":
        if rounded >= CRORE:
            return f"{CURRENCY_SYMBOL}{(rounded / CRORE).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)} Crore"
        if rounded >= LAKH:
            return f"{CURRENCY_SYMBOL}{(rounded / LAKH).quantize(Decimal('0.01'), rounding=ROUND_HALF_UP)} Lakh"
        return f"{CURRENCY_SYMBOL}{rounded}"

    sign = "-" if rounded < 0 else ""
    whole, fraction = f"{abs(rounded):.2f}".split(".")
    return f"{sign}{_group_indian(whole)}.{fraction}"
