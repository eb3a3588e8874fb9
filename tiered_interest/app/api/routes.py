"""HTTP routes for the Flask API."""

import logging
from http import HTTPStatus
from typing import Any, Dict

from flask import Blueprint, current_app, jsonify, request
from pydantic import ValidationError

from tiered_interest.core.amounts import parse_amount
from tiered_interest.core.interest import calculate
from tiered_interest.core.session import CalculatorSession
from tiered_interest.errors import ConfigurationError, InterestEngineError
from tiered_interest.schemas.interest import (
    DisplayAmounts,
    HistoryResponse,
    InterestRequest,
    InterestResponse,
    SessionUpdate,
    TierEdit,
    TierScheduleUpdate,
    TierScheduleView,
    TierView,
)

logger = logging.getLogger(__name__)

SESSION_EXTENSION = "tiered_interest.session"

api_bp = Blueprint("api", __name__)


def _session() -> CalculatorSession:
    return current_app.extensions[SESSION_EXTENSION]


def _payload() -> Dict[str, Any]:
    return request.get_json(force=True, silent=False)


@api_bp.errorhandler(ValidationError)
def _handle_schema_error(exc: ValidationError):
    """Convert Pydantic validation errors into JSON responses."""
    return jsonify({"detail": exc.errors(include_url=False, include_context=False)}), HTTPStatus.UNPROCESSABLE_ENTITY


@api_bp.errorhandler(InterestEngineError)
def _handle_engine_error(exc: InterestEngineError):
    """Configuration and input errors abort the request without a result."""
    kind = "configuration" if isinstance(exc, ConfigurationError) else "validation"
    logger.info(f"rejected request ({kind}): {exc}")
    return jsonify({"kind": kind, "detail": exc.errors}), HTTPStatus.UNPROCESSABLE_ENTITY


def _schedule_view(session: CalculatorSession) -> Dict[str, Any]:
    schedule = session.schedule
    record = schedule.to_record()
    try:
        tiers = [
            TierView(
                label=tier.label,
                lower_bound=tier.lower_bound,
                upper_bound=record["boundaries"][index],
                rate=record["rates"][index],
            )
            for index, tier in enumerate(schedule.tiers())
        ]
        errors = [
            f"rate for tier {index} is not a number" for index, rate in enumerate(record["rates"]) if rate is None
        ]
    except ConfigurationError as exc:
        # Schedules may be mid-edit; report instead of failing the read.
        tiers, errors = [], exc.errors
    view = TierScheduleView(boundaries=record["boundaries"], rates=record["rates"], tiers=tiers, errors=errors)
    return view.model_dump()


def _result_response(result, saved: bool):
    response = InterestResponse(result=result, display=DisplayAmounts.from_result(result), saved=saved)
    return jsonify(response.model_dump(mode="json"))


@api_bp.post("/calc/interest")
def calculate_interest() -> Any:
    """Calculate from a full request and archive the result in the history."""
    payload = InterestRequest.model_validate(_payload())
    session = _session()

    boundaries = payload.boundaries if payload.boundaries is not None else list(session.schedule.boundaries)
    rates = payload.rates if payload.rates is not None else list(session.schedule.rates)
    result = calculate(parse_amount(payload.amount), boundaries, rates, payload.duration, payload.mode)

    session.archive(result)
    return _result_response(result, session.last_save_ok)


@api_bp.get("/session")
def get_session() -> Any:
    session = _session()
    return jsonify({**session.state(), "tiers": _schedule_view(session)})


@api_bp.patch("/session")
def update_session() -> Any:
    update = SessionUpdate.model_validate(_payload())
    session = _session()
    if update.amount is not None:
        session.set_amount(update.amount)
    if update.duration_value is not None or update.duration_unit is not None:
        session.set_duration(update.duration_value, update.duration_unit)
    if update.mode is not None:
        session.set_mode(update.mode)
    return jsonify({**session.state(), "tiers": _schedule_view(session)})


@api_bp.post("/session/calculate")
def calculate_session() -> Any:
    session = _session()
    result = session.calculate()
    return _result_response(result, session.last_save_ok)


@api_bp.get("/tiers")
def get_tiers() -> Any:
    return jsonify(_schedule_view(_session()))


@api_bp.put("/tiers")
def replace_tiers() -> Any:
    update = TierScheduleUpdate.model_validate(_payload())
    session = _session()
    session.replace_schedule(update.boundaries, update.rates)
    return jsonify(_schedule_view(session))


@api_bp.post("/tiers")
def add_tier() -> Any:
    session = _session()
    session.add_tier()
    return jsonify(_schedule_view(session)), HTTPStatus.CREATED


@api_bp.put("/tiers/<int:index>")
def edit_tier(index: int) -> Any:
    edit = TierEdit.model_validate(_payload())
    session = _session()
    if "threshold" in edit.model_fields_set:
        session.set_threshold(index, edit.threshold)
    if edit.rate is not None:
        session.set_rate(index, edit.rate)
    return jsonify(_schedule_view(session))


@api_bp.delete("/tiers/<int:index>")
def remove_tier(index: int) -> Any:
    session = _session()
    session.remove_tier(index)
    return jsonify(_schedule_view(session))


@api_bp.post("/tiers/reset")
def reset_tiers() -> Any:
    session = _session()
    session.reset_tiers()
    return jsonify(_schedule_view(session))


@api_bp.get("/history")
def get_history() -> Any:
    response = HistoryResponse(calculations=_session().history)
    return jsonify(response.model_dump(mode="json"))


@api_bp.delete("/history")
def clear_history() -> Any:
    _session().clear_history()
    return "", HTTPStatus.NO_CONTENT


@api_bp.post("/history/<int:index>/apply")
def apply_history(index: int) -> Any:
    session = _session()
    try:
        session.apply_from_history(index)
    except IndexError as exc:
        return jsonify({"detail": str(exc)}), HTTPStatus.NOT_FOUND
    return jsonify({**session.state(), "tiers": _schedule_view(session)})
