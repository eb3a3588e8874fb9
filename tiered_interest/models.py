from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class TimeUnit(str, Enum):
    DAY = "day"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class CompoundingFrequency(str, Enum):
    ANNUALLY = "annually"
    SEMIANNUALLY = "semiannually"
    QUARTERLY = "quarterly"
    MONTHLY = "monthly"

    @classmethod
    def _missing_(cls, value: object) -> Optional["CompoundingFrequency"]:
        # The browser calculator wrote "semi-annually".
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "").replace("_", "")
            for member in cls:
                if member.value == normalized:
                    return member
        return None

    @property
    def periods_per_year(self) -> int:
        return {
            CompoundingFrequency.ANNUALLY: 1,
            CompoundingFrequency.SEMIANNUALLY: 2,
            CompoundingFrequency.QUARTERLY: 4,
            CompoundingFrequency.MONTHLY: 12,
        }[self]


class Duration(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    value: float
    unit: TimeUnit = TimeUnit.YEAR


class SimpleInterest(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["simple"] = "simple"


class CompoundInterest(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    kind: Literal["compound"] = "compound"
    frequency: CompoundingFrequency = CompoundingFrequency.ANNUALLY

    @field_validator("frequency", mode="before")
    @classmethod
    def normalize_frequency(cls, value: object) -> object:
        if isinstance(value, str):
            return CompoundingFrequency(value)
        return value


InterestMode = Annotated[Union[SimpleInterest, CompoundInterest], Field(discriminator="kind")]


class TierInterest(BaseModel):
    """One breakdown row: what a tier received and what it earned."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    tier_label: str
    allocated_amount: float = Field(..., ge=0)
    rate: float
    interest: float


class CalculationInputs(BaseModel):
    """Snapshot of everything needed to reproduce a calculation.

    ``boundaries`` uses ``None`` for the unbounded tier so the record stays
    JSON serialisable.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    principal: float
    boundaries: List[Optional[float]]
    rates: List[float]
    duration: Duration
    mode: InterestMode

    @property
    def is_compound(self) -> bool:
        return isinstance(self.mode, CompoundInterest)


class CalculationResult(BaseModel):
    model_config = ConfigDict(extra="forbid", frozen=True)

    principal: float
    breakdown: List[TierInterest]
    total_interest: float
    effective_annual_rate: float
    total_amount: float
    timestamp: datetime
    inputs: CalculationInputs
