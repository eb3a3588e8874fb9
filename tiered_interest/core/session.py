"""Caller-side calculator state: tier schedule, inputs and bounded history."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple

from tiered_interest.core.amounts import parse_amount
from tiered_interest.core.interest import calculate, coerce_duration, coerce_mode
from tiered_interest.core.store import KeyValueStore
from tiered_interest.domain.tiers import DEFAULT_RATE, MAX_TIERS, BoundaryInput, TierSchedule
from tiered_interest.errors import InterestEngineError
from tiered_interest.models import CalculationResult, Duration, InterestMode, SimpleInterest, TimeUnit

logger = logging.getLogger(__name__)

KEY_RATES = "interestRates"
KEY_THRESHOLDS = "tierThresholds"
KEY_AMOUNT = "amount"
KEY_TIME_PERIOD = "timePeriod"
KEY_CALCULATIONS = "calculations"

HISTORY_LIMIT = 10


class CalculatorSession:
    """Holds what a user has entered and persists it around engine calls.

    Store failures never abort an operation: they are logged and reflected in
    ``last_save_ok``.
    """

    def __init__(
        self,
        store: KeyValueStore,
        history_limit: int = HISTORY_LIMIT,
        default_rate: float = DEFAULT_RATE,
        max_tiers: int = MAX_TIERS,
    ):
        self.store = store
        self.history_limit = history_limit
        self.default_rate = default_rate
        self.max_tiers = max_tiers

        self.schedule = TierSchedule.defaults(default_rate=default_rate, max_tiers=max_tiers)
        self.amount = ""
        self.duration = Duration(value=1, unit=TimeUnit.YEAR)
        self.mode: InterestMode = SimpleInterest()
        self.history: List[CalculationResult] = []
        self.last_save_ok = True

        self._restore()

    # -- persistence -----------------------------------------------------

    # Any exception raised by the store counts as a persistence failure.

    def _load(self, key: str) -> Optional[Any]:
        try:
            return self.store.get(key)
        except Exception as exc:
            logger.warning(f"could not load {key!r}: {exc!r}")
            return None

    def _write(self, key: str, value: Any) -> bool:
        try:
            self.store.set(key, value)
        except Exception as exc:
            logger.warning(f"could not save {key!r}: {exc!r}")
            return False
        return True

    def _delete(self, key: str) -> bool:
        try:
            self.store.remove(key)
        except Exception as exc:
            logger.warning(f"could not remove {key!r}: {exc!r}")
            return False
        return True

    def _persist(self, *outcomes: bool) -> bool:
        """Record whether every write of one operation succeeded."""
        self.last_save_ok = all(outcomes)
        return self.last_save_ok

    def _save(self, key: str, value: Any) -> bool:
        return self._persist(self._write(key, value))

    def _restore(self) -> None:
        thresholds = self._load(KEY_THRESHOLDS)
        rates = self._load(KEY_RATES)
        if thresholds is not None or rates is not None:
            try:
                self.schedule = TierSchedule.from_values(
                    thresholds if thresholds is not None else self.schedule.boundaries,
                    rates if rates is not None else self.schedule.rates,
                    default_rate=self.default_rate,
                    max_tiers=self.max_tiers,
                )
            except (TypeError, ValueError) as exc:
                logger.warning(f"ignoring saved tier schedule: {exc}")

        amount = self._load(KEY_AMOUNT)
        if amount is not None:
            self.amount = str(amount)

        time_period = self._load(KEY_TIME_PERIOD)
        if time_period is not None:
            try:
                self.duration = coerce_duration(time_period)
            except InterestEngineError as exc:
                logger.warning(f"ignoring saved time period: {exc}")

        for record in self._load(KEY_CALCULATIONS) or []:
            try:
                self.history.append(CalculationResult.model_validate(record))
            except (TypeError, ValueError) as exc:
                logger.warning(f"skipping unreadable history entry: {exc}")
        self.history = self.history[: self.history_limit]

    def _write_schedule(self) -> Tuple[bool, bool]:
        record = self.schedule.to_record()
        return self._write(KEY_THRESHOLDS, record["boundaries"]), self._write(KEY_RATES, record["rates"])

    def _save_history(self) -> bool:
        return self._save(KEY_CALCULATIONS, [result.model_dump(mode="json") for result in self.history])

    # -- inputs ----------------------------------------------------------

    @property
    def principal(self) -> float:
        return parse_amount(self.amount)

    def set_amount(self, text: Any) -> None:
        self.amount = "" if text is None else str(text)
        self._save(KEY_AMOUNT, self.amount)

    def set_duration(self, value: Any = None, unit: Any = None) -> Duration:
        self.duration = coerce_duration(
            {
                "value": self.duration.value if value is None else value,
                "unit": self.duration.unit if unit is None else unit,
            }
        )
        self._save(KEY_TIME_PERIOD, self.duration.model_dump(mode="json"))
        return self.duration

    def set_mode(self, mode: Any) -> InterestMode:
        self.mode = coerce_mode(mode)
        return self.mode

    # -- tier schedule ---------------------------------------------------

    def _apply_schedule(self, schedule: TierSchedule) -> TierSchedule:
        self.schedule = schedule
        self._persist(*self._write_schedule())
        return schedule

    def replace_schedule(self, boundaries: List[BoundaryInput], rates: List[Any]) -> TierSchedule:
        return self._apply_schedule(
            TierSchedule.from_values(boundaries, rates, default_rate=self.default_rate, max_tiers=self.max_tiers)
        )

    def set_rate(self, index: int, rate: Any) -> TierSchedule:
        return self._apply_schedule(self.schedule.update_rate(index, rate))

    def set_threshold(self, index: int, value: BoundaryInput) -> TierSchedule:
        return self._apply_schedule(self.schedule.update_threshold(index, value))

    def add_tier(self) -> TierSchedule:
        return self._apply_schedule(self.schedule.add_tier())

    def remove_tier(self, index: int) -> TierSchedule:
        return self._apply_schedule(self.schedule.remove_tier(index))

    def reset_tiers(self) -> TierSchedule:
        logger.info("tier schedule reset to defaults")
        return self._apply_schedule(TierSchedule.defaults(default_rate=self.default_rate, max_tiers=self.max_tiers))

    # -- calculations ----------------------------------------------------

    def calculate(self) -> CalculationResult:
        # The schedule is immutable, so this reference is a stable snapshot.
        schedule = self.schedule
        result = calculate(self.principal, schedule.boundaries, schedule.rates, self.duration, self.mode)
        logger.info(f"calculated interest {result.total_interest:.2f} on {result.principal:.2f}")
        self.archive(result)
        return result

    def archive(self, result: CalculationResult) -> None:
        self.history = [result, *self.history][: self.history_limit]
        self._save_history()

    def clear_history(self) -> None:
        self.history = []
        self._persist(self._delete(KEY_CALCULATIONS))
        logger.info("calculation history cleared")

    def apply_from_history(self, index: int) -> CalculationResult:
        """Load the inputs of a saved calculation back into the session."""
        if not 0 <= index < len(self.history):
            raise IndexError(f"no saved calculation at position {index}")
        saved = self.history[index]
        inputs = saved.inputs

        self.schedule = TierSchedule.from_values(
            inputs.boundaries, inputs.rates, default_rate=self.default_rate, max_tiers=self.max_tiers
        )
        self.duration = inputs.duration
        self.mode = inputs.mode
        self.amount = str(inputs.principal)
        self._persist(
            *self._write_schedule(),
            self._write(KEY_TIME_PERIOD, self.duration.model_dump(mode="json")),
            self._write(KEY_AMOUNT, self.amount),
        )
        return saved

    def state(self) -> Dict[str, Any]:
        return {
            "amount": self.amount,
            "principal": self.principal,
            "duration": self.duration.model_dump(mode="json"),
            "mode": self.mode.model_dump(mode="json"),
            "schedule": self.schedule.to_record(),
        }
