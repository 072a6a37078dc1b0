"""
Request builder -- turns a raw distribution body into a DistributionRequest.

All checks here run before any transaction is opened; every failure raises
RequestValidationError naming the offending field.
"""

from __future__ import annotations

from dataclasses import fields
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from defect_kernel.domain.capacity import QUANTITY_SCALE, decimal_places
from defect_kernel.domain.dtos import DefectLogDetails, DistributionRequest
from defect_kernel.exceptions import RequestValidationError

_REQUIRED_TEXT = ("work_center", "line_cd", "material_code")
_DECISIONS = ("S", "R", "Q")
_LOG_FIELDS = tuple(f.name for f in fields(DefectLogDetails))

DEFAULT_DEFECT_FORM = "###"
DEFECT_FORM_MAX_LENGTH = 10


def _text(body: Mapping[str, Any], name: str, required: bool) -> str | None:
    value = body.get(name)
    if value is None:
        if required:
            raise RequestValidationError(name, "is required")
        return None
    if not isinstance(value, str):
        raise RequestValidationError(name, "must be a string")
    value = value.strip()
    if not value:
        if required:
            raise RequestValidationError(name, "is required")
        return None
    return value


def parse_quantity(value: Any, name: str = "defect_qty") -> Decimal:
    """Positive quantity with at most three decimal places."""
    if value is None:
        raise RequestValidationError(name, "is required")
    if isinstance(value, bool) or not isinstance(value, int | float | str | Decimal):
        raise RequestValidationError(name, "must be a number")
    try:
        qty = Decimal(str(value).strip())
    except InvalidOperation:
        raise RequestValidationError(name, "must be a number") from None
    if not qty.is_finite():
        raise RequestValidationError(name, "must be a number")
    if qty <= 0:
        raise RequestValidationError(name, "must be greater than 0")
    if decimal_places(qty) > QUANTITY_SCALE:
        raise RequestValidationError(
            name, f"must have at most {QUANTITY_SCALE} decimal places"
        )
    return qty


def parse_defect_form(value: Any) -> str:
    """Blank or missing forms default to ``###``."""
    if value is None:
        return DEFAULT_DEFECT_FORM
    form = str(value).strip()
    if not form:
        return DEFAULT_DEFECT_FORM
    if len(form) > DEFECT_FORM_MAX_LENGTH:
        raise RequestValidationError(
            "defect_form", f"must be at most {DEFECT_FORM_MAX_LENGTH} characters"
        )
    return form


def parse_defect_date(value: Any) -> str:
    """Accept a date, YYYYMMDD or YYYY-MM-DD; return YYYYMMDD."""
    if isinstance(value, datetime):
        return value.strftime("%Y%m%d")
    if isinstance(value, date):
        return value.strftime("%Y%m%d")
    if not isinstance(value, str) or not value.strip():
        raise RequestValidationError("defect_date", "is required")
    raw = value.strip()
    for fmt in ("%Y%m%d", "%Y-%m-%d"):
        try:
            return datetime.strptime(raw, fmt).strftime("%Y%m%d")
        except ValueError:
            continue
    raise RequestValidationError("defect_date", "must be YYYYMMDD or YYYY-MM-DD")


def parse_log(value: Any) -> DefectLogDetails:
    if value is None:
        return DefectLogDetails()
    if not isinstance(value, Mapping):
        raise RequestValidationError("log", "must be an object")

    details: dict[str, str | None] = {}
    for name in _LOG_FIELDS:
        raw = value.get(name)
        if raw is None:
            continue
        if isinstance(raw, int | float) and not isinstance(raw, bool):
            raw = str(raw)
        if not isinstance(raw, str):
            raise RequestValidationError(f"log.{name}", "must be a string")
        details[name] = raw.strip() or None

    decision = details.get("defect_decision")
    if decision is not None:
        decision = details["defect_decision"] = decision.upper()
        if decision not in _DECISIONS:
            raise RequestValidationError(
                "log.defect_decision", f"must be one of {', '.join(_DECISIONS)}"
            )
    return DefectLogDetails(**details)


def build_distribution_request(
    plant: Any, body: Mapping[str, Any]
) -> DistributionRequest:
    """
    Validate ``body`` and build the request for ``plant``.

    Raises:
        RequestValidationError: first invalid field found.
    """
    if not isinstance(plant, str) or not plant.strip():
        raise RequestValidationError("plant", "is required")
    if not isinstance(body, Mapping):
        raise RequestValidationError("body", "must be an object")

    text = {name: _text(body, name, required=True) for name in _REQUIRED_TEXT}

    return DistributionRequest(
        plant=plant.strip(),
        work_center=text["work_center"],
        line_cd=text["line_cd"],
        material_code=text["material_code"],
        defect_form=parse_defect_form(body.get("defect_form")),
        defect_qty=parse_quantity(body.get("defect_qty")),
        defect_date=parse_defect_date(body.get("defect_date")),
        machine_cd=_text(body, "machine_cd", required=False),
        log=parse_log(body.get("log")),
        creator=_text(body, "creator", required=False),
        create_pc=_text(body, "create_pc", required=False),
    )
