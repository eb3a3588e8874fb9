"""Tiered interest engine: allocation, accrual and rate annualisation."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple

from pydantic import TypeAdapter
from pydantic import ValidationError as SchemaError

from tiered_interest.domain.tiers import BoundaryInput, Tier, boundary_value, resolve_tiers
from tiered_interest.errors import ConfigurationError, ValidationError
from tiered_interest.models import (
    CalculationInputs,
    CalculationResult,
    CompoundInterest,
    Duration,
    InterestMode,
    SimpleInterest,
    TierInterest,
    TimeUnit,
)

logger = logging.getLogger(__name__)

EPSILON = 1e-9

OUT_OF_RANGE = "interest exceeds the representable range; shorten the duration or lower the rates"

UNITS_PER_YEAR = {
    TimeUnit.DAY: 365,
    TimeUnit.MONTH: 12,
    TimeUnit.QUARTER: 4,
    TimeUnit.YEAR: 1,
}

_MODE_ADAPTER: TypeAdapter = TypeAdapter(InterestMode)


@dataclass(frozen=True)
class AllocationEntry:
    tier_index: int
    tier_label: str
    allocated_amount: float
    rate: Optional[float] = None


def _schema_messages(exc: SchemaError, prefix: str) -> List[str]:
    messages = []
    for error in exc.errors(include_url=False, include_context=False):
        location = ".".join(str(part) for part in error["loc"])
        messages.append(f"{prefix}{'.' + location if location else ''}: {error['msg']}")
    return messages


def coerce_duration(duration: Any) -> Duration:
    if isinstance(duration, Duration):
        return duration
    try:
        return Duration.model_validate(duration)
    except SchemaError as exc:
        raise ValidationError(_schema_messages(exc, "duration")) from exc


def coerce_mode(mode: Any) -> InterestMode:
    if mode is None:
        return SimpleInterest()
    if isinstance(mode, (SimpleInterest, CompoundInterest)):
        return mode
    if isinstance(mode, str):
        mode = {"kind": mode}
    try:
        return _MODE_ADAPTER.validate_python(mode)
    except SchemaError as exc:
        raise ValidationError(_schema_messages(exc, "mode")) from exc


def year_fraction(duration: Duration) -> float:
    return duration.value / UNITS_PER_YEAR[duration.unit]


def allocate(principal: float, tiers: Sequence[Tier]) -> List[AllocationEntry]:
    """Fill tiers in order with as much of the principal as each can hold.

    Every tier before the partially filled one is full and nothing is left for
    the tiers after it. Zero-width tiers are skipped.
    """
    remaining = principal
    entries: List[AllocationEntry] = []
    for index, tier in enumerate(tiers):
        if remaining <= EPSILON:
            break
        allocated = min(remaining, tier.capacity)
        if allocated <= EPSILON:
            continue
        entries.append(AllocationEntry(tier_index=index, tier_label=tier.label, allocated_amount=allocated))
        remaining -= allocated
    return entries


def attach_rates(entries: Iterable[AllocationEntry], rates: Sequence[float]) -> List[AllocationEntry]:
    return [replace(entry, rate=rates[entry.tier_index]) for entry in entries]


def tier_interest(amount: float, rate: float, years: float, mode: InterestMode) -> float:
    rate_decimal = rate / 100
    if isinstance(mode, CompoundInterest):
        periods = mode.frequency.periods_per_year
        return amount * ((1 + rate_decimal / periods) ** (periods * years) - 1)
    return amount * rate_decimal * years


def accumulate(
    entries: Iterable[AllocationEntry],
    duration: Duration,
    mode: InterestMode,
) -> Tuple[List[TierInterest], float]:
    years = year_fraction(duration)
    breakdown: List[TierInterest] = []
    total = 0.0
    for entry in entries:
        interest = tier_interest(entry.allocated_amount, entry.rate, years, mode)
        total += interest
        breakdown.append(
            TierInterest(
                tier_label=entry.tier_label,
                allocated_amount=entry.allocated_amount,
                rate=entry.rate,
                interest=interest,
            )
        )
    return breakdown, total


def annualize_rate(total_interest: float, principal: float, duration: Duration) -> float:
    """Scale the period yield to a yearly percentage.

    This is a linear scaling of the simple yield, not a compound-equivalent
    annual rate.
    """
    raw_rate = (total_interest / principal) * 100
    if duration.unit == TimeUnit.YEAR and duration.value == 1:
        return raw_rate
    return raw_rate * (1 / year_fraction(duration))


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def validate_inputs(principal: Any, rates: Sequence[Any], duration: Duration) -> List[float]:
    """Check principal, rates and duration; return the rates as floats."""
    errors: List[str] = []

    if not _is_number(principal) or not math.isfinite(principal) or principal <= 0:
        errors.append(f"principal must be a positive number, got {principal!r}")

    checked_rates: List[float] = []
    for index, rate in enumerate(rates):
        if not _is_number(rate) or not math.isfinite(rate) or rate < 0:
            errors.append(f"rate for tier {index} must be a non-negative number, got {rate!r}")
            checked_rates.append(math.nan)
        else:
            checked_rates.append(float(rate))

    if not math.isfinite(duration.value) or duration.value <= 0:
        errors.append(f"duration value must be a positive number, got {duration.value!r}")

    if errors:
        raise ValidationError(errors)
    return checked_rates


def calculate(
    principal: float,
    tier_boundaries: Sequence[BoundaryInput],
    rates: Sequence[float],
    duration: Any,
    mode: Any = None,
    *,
    now: Optional[datetime] = None,
    formatter: Optional[Callable[[float], str]] = None,
) -> CalculationResult:
    """Compute tiered interest for ``principal``.

    Raises ``ConfigurationError`` for an unusable tier schedule and
    ``ValidationError`` for out-of-range inputs; nothing is returned in
    either case.
    """
    boundaries = list(tier_boundaries)
    rates = list(rates)
    tiers = resolve_tiers(boundaries, formatter)
    if len(rates) != len(tiers):
        raise ConfigurationError(
            [f"{len(tiers)} tier boundaries but {len(rates)} rates; repair the schedule before calculating"]
        )

    duration = coerce_duration(duration)
    mode = coerce_mode(mode)
    checked_rates = validate_inputs(principal, rates, duration)
    principal = float(principal)

    entries = attach_rates(allocate(principal, tiers), checked_rates)
    try:
        breakdown, total_interest = accumulate(entries, duration, mode)
        effective_rate = annualize_rate(total_interest, principal, duration)
    except OverflowError as exc:
        raise ValidationError([OUT_OF_RANGE]) from exc
    if not all(math.isfinite(value) for value in (total_interest, effective_rate, principal + total_interest)):
        raise ValidationError([OUT_OF_RANGE])
    logger.debug(
        f"calculated {mode.kind} interest on {principal} over {len(tiers)} tiers: "
        f"t={year_fraction(duration)}, total={total_interest}"
    )

    return CalculationResult(
        principal=principal,
        breakdown=breakdown,
        total_interest=total_interest,
        effective_annual_rate=effective_rate,
        total_amount=principal + total_interest,
        timestamp=now or datetime.now(timezone.utc),
        inputs=CalculationInputs(
            principal=principal,
            boundaries=[boundary_value(tier.upper_bound) for tier in tiers],
            rates=checked_rates,
            duration=duration,
            mode=mode,
        ),
    )


def recalculate(inputs: CalculationInputs, *, now: Optional[datetime] = None) -> CalculationResult:
    """Re-derive a result from the inputs saved with an earlier one."""
    return calculate(inputs.principal, inputs.boundaries, inputs.rates, inputs.duration, inputs.mode, now=now)
