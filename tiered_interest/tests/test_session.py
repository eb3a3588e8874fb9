from __future__ import annotations

import math
from math import isclose
from typing import Any, Optional

import pytest

from tiered_interest.core.session import (
    KEY_AMOUNT,
    KEY_CALCULATIONS,
    KEY_RATES,
    KEY_THRESHOLDS,
    KEY_TIME_PERIOD,
    CalculatorSession,
)
from tiered_interest.core.store import MemoryStore, StoreError
from tiered_interest.errors import ConfigurationError, ValidationError
from tiered_interest.models import CompoundInterest, SimpleInterest, TimeUnit


class FailingStore(MemoryStore):
    """Reads work, writes fail, like a store that ran out of quota."""

    def set(self, key: str, value: Any) -> None:
        raise StoreError(f"quota exceeded writing {key}")

    def remove(self, key: str) -> None:
        raise StoreError(f"cannot remove {key}")


class DisconnectedStore(MemoryStore):
    """Raises whatever its backend raises rather than StoreError."""

    def set(self, key: str, value: Any) -> None:
        raise ConnectionError(f"connection reset writing {key}")

    def remove(self, key: str) -> None:
        raise OSError(f"disk unavailable removing {key}")


class ThresholdsLockedStore(MemoryStore):
    def set(self, key: str, value: Any) -> None:
        if key == KEY_THRESHOLDS:
            raise StoreError("thresholds are locked")
        super().set(key, value)


class UnavailableStore:
    def get(self, key: str) -> Optional[Any]:
        raise StoreError("store offline")

    def set(self, key: str, value: Any) -> None:
        raise StoreError("store offline")

    def remove(self, key: str) -> None:
        raise StoreError("store offline")


def test_new_session_uses_defaults(store):
    session = CalculatorSession(store)

    assert session.schedule.to_record()["rates"] == [4.00, 6.25, 7.50, 7.75]
    assert session.amount == ""
    assert session.duration.unit == TimeUnit.YEAR
    assert isinstance(session.mode, SimpleInterest)
    assert session.history == []


def test_inputs_are_persisted_and_restored(store):
    session = CalculatorSession(store)
    session.set_amount("6 Lakh")
    session.set_duration(value=9, unit="month")
    session.add_tier()
    session.set_rate(0, 5.5)

    assert store.get(KEY_AMOUNT) == "6 Lakh"
    assert store.get(KEY_TIME_PERIOD) == {"value": 9.0, "unit": "month"}

    restored = CalculatorSession(store)
    assert restored.amount == "6 Lakh"
    assert restored.principal == 600000
    assert restored.duration.value == 9
    assert restored.schedule == session.schedule


def test_restores_values_written_by_the_browser_calculator():
    store = MemoryStore()
    store.set(KEY_THRESHOLDS, ["100000", "500000", "Infinity"])
    store.set(KEY_RATES, ["4.00", "6.25"])
    store.set(KEY_TIME_PERIOD, {"value": "3", "unit": "quarter"})
    store.set(KEY_CALCULATIONS, [{"depositAmount": 1000, "tierBreakdown": []}])

    session = CalculatorSession(store, default_rate=4.0)

    assert session.schedule.to_record() == {"boundaries": [100000.0, 500000.0, None], "rates": [4.0, 6.25, 4.0]}
    assert session.duration.value == 3
    assert session.duration.unit == TimeUnit.QUARTER
    assert session.history == []


def test_calculate_archives_newest_first(store):
    session = CalculatorSession(store)
    for amount in ["100000", "200000", "300000"]:
        session.set_amount(amount)
        session.calculate()

    assert [result.principal for result in session.history] == [300000, 200000, 100000]
    assert [record["principal"] for record in store.get(KEY_CALCULATIONS)] == [300000, 200000, 100000]


def test_history_is_bounded(store):
    session = CalculatorSession(store)
    for index in range(1, 13):
        session.set_amount(str(index * 1000))
        session.calculate()

    assert len(session.history) == 10
    assert session.history[0].principal == 12000
    assert session.history[-1].principal == 3000
    assert len(CalculatorSession(store).history) == 10


def test_history_survives_restart(store):
    session = CalculatorSession(store)
    session.set_amount("5 Lakh")
    result = session.calculate()

    restored = CalculatorSession(store)

    assert restored.history == [result]


def test_clear_history_removes_saved_key(store):
    session = CalculatorSession(store)
    session.set_amount("1000")
    session.calculate()

    session.clear_history()

    assert session.history == []
    assert store.get(KEY_CALCULATIONS) is None


def test_apply_from_history_restores_inputs(store):
    session = CalculatorSession(store)
    session.set_amount("7.5 Lakh")
    session.set_duration(value=18, unit="month")
    session.set_mode({"kind": "compound", "frequency": "quarterly"})
    session.remove_tier(2)
    saved = session.calculate()

    session.reset_tiers()
    session.set_amount("10")
    session.set_duration(value=1, unit="year")
    session.set_mode("simple")

    session.apply_from_history(0)

    assert session.principal == saved.principal
    assert session.duration == saved.inputs.duration
    assert isinstance(session.mode, CompoundInterest)
    assert session.schedule.to_record() == {
        "boundaries": saved.inputs.boundaries,
        "rates": saved.inputs.rates,
    }
    again = session.calculate()
    assert again.breakdown == saved.breakdown
    assert again.total_interest == saved.total_interest


def test_apply_from_history_out_of_range(store):
    with pytest.raises(IndexError):
        CalculatorSession(store).apply_from_history(0)


def test_invalid_amount_aborts_without_archiving(store):
    session = CalculatorSession(store)
    session.set_amount("not an amount")

    with pytest.raises(ValidationError):
        session.calculate()
    assert session.history == []


def test_invalid_schedule_edit_is_rejected_before_calculation(store):
    session = CalculatorSession(store)
    session.set_amount("6 Lakh")
    session.set_threshold(0, 900000)

    with pytest.raises(ConfigurationError):
        session.calculate()
    assert session.history == []


def test_write_failures_do_not_affect_results():
    session = CalculatorSession(FailingStore())
    session.set_amount("6 Lakh")

    result = session.calculate()

    assert isclose(result.total_interest, 4000 + 6.25 / 100 * 400000 + 7.5 / 100 * 100000)
    assert session.history == [result]
    assert session.last_save_ok is False

    session.clear_history()
    assert session.history == []


def test_unavailable_store_falls_back_to_defaults():
    session = CalculatorSession(UnavailableStore())

    assert session.schedule.to_record()["boundaries"] == [100000.0, 500000.0, 500000000.0, None]
    session.set_amount("1000")
    assert session.calculate().principal == 1000


def test_backend_exceptions_do_not_affect_results():
    session = CalculatorSession(DisconnectedStore())
    session.set_amount("6 Lakh")
    assert session.last_save_ok is False

    result = session.calculate()

    assert result.principal == 600000
    assert session.history == [result]
    assert session.last_save_ok is False

    session.clear_history()
    assert session.history == []
    assert session.last_save_ok is False


def test_one_failed_write_marks_the_whole_operation_unsaved():
    session = CalculatorSession(ThresholdsLockedStore())

    session.set_rate(0, 5.0)

    assert session.schedule.rates[0] == 5.0
    assert session.last_save_ok is False

    session.set_amount("1000")
    assert session.last_save_ok is True


def test_unparseable_rate_is_saved_as_null_and_restored(store):
    session = CalculatorSession(store)
    session.set_rate(1, "abc")

    assert store.get(KEY_RATES)[1] is None
    assert math.isnan(CalculatorSession(store).schedule.rates[1])
