"""Tiered interest calculator: tier allocation, simple/compound accrual and rate annualisation."""

from tiered_interest.core.interest import calculate
from tiered_interest.domain.tiers import UNBOUNDED, Bounded, TierSchedule, Unbounded, resolve_tiers
from tiered_interest.errors import ConfigurationError, InterestEngineError, ValidationError
from tiered_interest.models import (
    CalculationResult,
    CompoundInterest,
    CompoundingFrequency,
    Duration,
    SimpleInterest,
    TimeUnit,
)

__all__ = [
    "UNBOUNDED",
    "Bounded",
    "CalculationResult",
    "CompoundInterest",
    "CompoundingFrequency",
    "ConfigurationError",
    "Duration",
    "InterestEngineError",
    "SimpleInterest",
    "TierSchedule",
    "TimeUnit",
    "Unbounded",
    "ValidationError",
    "calculate",
    "resolve_tiers",
]
