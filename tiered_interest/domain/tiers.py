from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from tiered_interest.core.amounts import format_amount, parse_amount
from tiered_interest.errors import ConfigurationError

logger = logging.getLogger(__name__)

DEFAULT_RATE = 4.0
MAX_TIERS = 10
MIN_TIERS = 2
FIRST_SUGGESTED_BOUNDARY = 100000.0


@dataclass(frozen=True)
class Bounded:
    value: float


@dataclass(frozen=True)
class Unbounded:
    def __repr__(self) -> str:
        return "UNBOUNDED"


UNBOUNDED = Unbounded()

Boundary = Union[Bounded, Unbounded]
BoundaryInput = Union[Bounded, Unbounded, float, int, str, None]


def to_boundary(value: BoundaryInput) -> Boundary:
    """Normalise a raw boundary (number, text, ``None``/inf for unbounded)."""
    if isinstance(value, (Bounded, Unbounded)):
        return value
    if value is None:
        return UNBOUNDED
    if isinstance(value, str):
        if value.strip().lower() in {"infinity", "inf", "+inf", "unbounded", "above"}:
            return UNBOUNDED
        value = parse_amount(value)
    if isinstance(value, bool):
        raise TypeError(f"boundary must be a number, got {value!r}")
    number = float(value)
    if math.isinf(number) and number > 0:
        return UNBOUNDED
    return Bounded(number)


def boundary_value(boundary: Boundary) -> Optional[float]:
    if isinstance(boundary, Unbounded):
        return None
    return boundary.value


@dataclass(frozen=True)
class Tier:
    lower_bound: float
    upper_bound: Boundary
    label: str

    @property
    def capacity(self) -> float:
        if isinstance(self.upper_bound, Unbounded):
            return math.inf
        return self.upper_bound.value - self.lower_bound


def _text_amount(value: float) -> str:
    return format_amount(value, "text")


def check_boundaries(boundaries: Sequence[Boundary]) -> List[str]:
    errors: List[str] = []
    if not boundaries:
        errors.append("at least one tier boundary is required")

    previous: Optional[float] = None
    last_index = len(boundaries) - 1
    for index, boundary in enumerate(boundaries):
        if isinstance(boundary, Unbounded):
            if index != last_index:
                errors.append(f"unbounded tier must be the last tier (found at position {index})")
            continue
        if not math.isfinite(boundary.value) or boundary.value <= 0:
            errors.append(f"boundary {index} must be a finite positive number")
            continue
        if previous is not None and boundary.value < previous:
            errors.append(f"boundary {index} ({boundary.value:g}) is below the previous boundary ({previous:g})")
        previous = boundary.value
    return errors


def tier_label(index: int, boundaries: Sequence[Boundary], formatter: Callable[[float], str]) -> str:
    upper = boundaries[index]
    if index == 0:
        if isinstance(upper, Unbounded):
            return "Any amount"
        return f"Upto {formatter(upper.value)}"

    lower_text = formatter(boundaries[index - 1].value)
    if isinstance(upper, Unbounded):
        return f"Above {lower_text}"
    return f"Above {lower_text} upto {formatter(upper.value)}"


def resolve_tiers(
    raw_boundaries: Iterable[BoundaryInput],
    formatter: Optional[Callable[[float], str]] = None,
) -> List[Tier]:
    """Build the ordered tier list for a boundary sequence.

    Tier ``i`` covers amounts above boundary ``i - 1`` (0 for the first tier)
    up to boundary ``i``. Raises ``ConfigurationError`` when the sequence
    cannot describe a tier ladder.
    """
    formatter = formatter or _text_amount
    boundaries: List[Boundary] = []
    errors: List[str] = []
    for index, raw in enumerate(raw_boundaries):
        try:
            boundaries.append(to_boundary(raw))
        except (TypeError, ValueError):
            errors.append(f"boundary {index} is not a number: {raw!r}")
    if errors:
        raise ConfigurationError(errors)

    errors = check_boundaries(boundaries)
    if errors:
        raise ConfigurationError(errors)

    tiers: List[Tier] = []
    lower = 0.0
    for index, boundary in enumerate(boundaries):
        tiers.append(Tier(lower_bound=lower, upper_bound=boundary, label=tier_label(index, boundaries, formatter)))
        if isinstance(boundary, Bounded):
            lower = boundary.value
    return tiers


def _to_rate(value: Any) -> float:
    # Unparseable rates become NaN so the engine reports them as invalid.
    try:
        return float(value)
    except (TypeError, ValueError):
        return math.nan


DEFAULT_BOUNDARIES: Tuple[Boundary, ...] = (
    Bounded(100000.0),
    Bounded(500000.0),
    Bounded(500000000.0),
    UNBOUNDED,
)
DEFAULT_RATES: Tuple[float, ...] = (4.00, 6.25, 7.50, 7.75)


@dataclass(frozen=True)
class TierSchedule:
    """Tier boundaries and their rates, kept index aligned.

    Every edit returns a new schedule that has been repaired so that there is
    exactly one rate per boundary.
    """

    boundaries: Tuple[Boundary, ...]
    rates: Tuple[float, ...]
    default_rate: float = DEFAULT_RATE
    max_tiers: int = MAX_TIERS

    @classmethod
    def defaults(cls, default_rate: float = DEFAULT_RATE, max_tiers: int = MAX_TIERS) -> "TierSchedule":
        return cls(DEFAULT_BOUNDARIES, DEFAULT_RATES, default_rate=default_rate, max_tiers=max_tiers)

    @classmethod
    def from_values(
        cls,
        boundaries: Iterable[BoundaryInput],
        rates: Iterable[Any],
        default_rate: float = DEFAULT_RATE,
        max_tiers: int = MAX_TIERS,
    ) -> "TierSchedule":
        normalized: List[Boundary] = []
        for index, raw in enumerate(boundaries):
            try:
                normalized.append(to_boundary(raw))
            except (TypeError, ValueError) as exc:
                raise ConfigurationError([f"boundary {index} is not a number: {raw!r}"]) from exc
        schedule = cls(
            tuple(normalized),
            tuple(_to_rate(rate) for rate in rates),
            default_rate=default_rate,
            max_tiers=max_tiers,
        )
        return schedule.repair()

    @classmethod
    def from_record(cls, record: Dict[str, Any], **kwargs: Any) -> "TierSchedule":
        return cls.from_values(record["boundaries"], record["rates"], **kwargs)

    def to_record(self) -> Dict[str, Any]:
        return {
            "boundaries": [boundary_value(boundary) for boundary in self.boundaries],
            "rates": [None if math.isnan(rate) else rate for rate in self.rates],
        }

    @property
    def is_aligned(self) -> bool:
        return len(self.rates) == len(self.boundaries)

    def _replace(self, boundaries: Sequence[Boundary], rates: Sequence[float]) -> "TierSchedule":
        return TierSchedule(tuple(boundaries), tuple(rates), self.default_rate, self.max_tiers)

    def repair(self) -> "TierSchedule":
        if self.is_aligned:
            return self
        rates = list(self.rates[: len(self.boundaries)])
        rates.extend([self.default_rate] * (len(self.boundaries) - len(rates)))
        logger.debug(f"repaired rate schedule from {len(self.rates)} to {len(rates)} rates")
        return self._replace(self.boundaries, rates)

    def tiers(self, formatter: Optional[Callable[[float], str]] = None) -> List[Tier]:
        return resolve_tiers(self.boundaries, formatter)

    def _check_index(self, index: int) -> None:
        if not 0 <= index < len(self.boundaries):
            raise ConfigurationError([f"tier index {index} is out of range"])

    def add_tier(self) -> "TierSchedule":
        if len(self.boundaries) >= self.max_tiers:
            raise ConfigurationError([f"Maximum {self.max_tiers} tiers allowed"])

        finite = [boundary.value for boundary in self.boundaries if isinstance(boundary, Bounded)]
        suggested = Bounded(finite[-1] * 2 if finite and finite[-1] > 0 else FIRST_SUGGESTED_BOUNDARY)

        boundaries = list(self.boundaries)
        rates = list(self.rates)
        position = len(boundaries) - 1 if boundaries and isinstance(boundaries[-1], Unbounded) else len(boundaries)
        boundaries.insert(position, suggested)
        rates.insert(position, self.default_rate)
        return self._replace(boundaries, rates).repair()

    def remove_tier(self, index: int) -> "TierSchedule":
        self._check_index(index)
        if len(self.boundaries) <= MIN_TIERS:
            raise ConfigurationError(["Minimum 1 tier required besides the highest tier"])
        if index == len(self.boundaries) - 1:
            raise ConfigurationError(["Cannot remove the highest tier"])

        boundaries = [b for position, b in enumerate(self.boundaries) if position != index]
        rates = [r for position, r in enumerate(self.rates) if position != index]
        return self._replace(boundaries, rates).repair()

    def update_threshold(self, index: int, value: BoundaryInput) -> "TierSchedule":
        self._check_index(index)
        if index == len(self.boundaries) - 1:
            raise ConfigurationError(["The highest tier threshold cannot be edited"])
        try:
            boundary = to_boundary(value)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError([f"threshold is not a number: {value!r}"]) from exc

        boundaries = list(self.boundaries)
        boundaries[index] = boundary
        return self._replace(boundaries, self.rates).repair()

    def update_rate(self, index: int, rate: Any) -> "TierSchedule":
        self._check_index(index)
        rates = list(self.repair().rates)
        rates[index] = _to_rate(rate)
        return self._replace(self.boundaries, rates)
