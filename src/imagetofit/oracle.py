"""Reconcile the image-parsing oracle's answer into a trustworthy ParseResult.

The oracle (a vision model) is asked for a JSON object holding the workout
fields next to ``warnings`` and ``confidence``. Its answer is untrusted: it may
be wrapped in a markdown code fence, and its numbers may be out of range.
A workout that fails validation is repaired, and the confidence reported to
the user is capped to show that fidelity was traded for validity.
"""

import json
import logging
import math
from collections.abc import Mapping

from imagetofit.models.api import ParseResult
from imagetofit.repair import repair_report
from imagetofit.validation import validate

logger = logging.getLogger(__name__)

# Coarse on purpose: the cap does not depend on how much was repaired.
REPAIR_CONFIDENCE_CEILING = 0.6
DEFAULT_CONFIDENCE = 0.5
REPAIR_WARNING = "Some parsed data required adjustment to match schema"


class OracleResponseError(ValueError):
    """Raised when the oracle's answer is not a JSON object."""


def decode_oracle_text(text: str) -> dict:  # type: ignore[type-arg]
    """Decode the oracle's reply, tolerating a surrounding markdown fence."""
    cleaned = text.strip()
    if cleaned.startswith("```json"):
        cleaned = cleaned[len("```json") :]
    elif cleaned.startswith("```"):
        cleaned = cleaned[3:]
    if cleaned.endswith("```"):
        cleaned = cleaned[:-3]
    cleaned = cleaned.strip()

    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as exc:
        raise OracleResponseError(f"Oracle reply is not valid JSON: {exc}") from exc
    if not isinstance(data, dict):
        raise OracleResponseError("Oracle reply must be a JSON object")
    return data


def _confidence(raw: object) -> float:
    if isinstance(raw, bool) or not isinstance(raw, (int, float)):
        return DEFAULT_CONFIDENCE
    if not math.isfinite(raw):
        return DEFAULT_CONFIDENCE
    return min(max(float(raw), 0.0), 1.0)


def _warnings(raw: object) -> list[str]:
    if not isinstance(raw, list):
        return []
    return [w for w in raw if isinstance(w, str)]


def reconcile(raw: Mapping) -> ParseResult:  # type: ignore[type-arg]
    """Turn the oracle's decoded object into a ParseResult.

    A valid workout passes through with the oracle's own confidence. An
    invalid one is repaired; the repair warning is appended and the
    confidence capped at ``REPAIR_CONFIDENCE_CEILING``.

    Raises:
        UnrepairableWorkoutError: the workout is invalid and has no step of
            a known kind to repair.
    """
    warnings = _warnings(raw.get("warnings"))
    confidence = _confidence(raw.get("confidence"))

    result = validate(raw)
    if result.workout is not None:
        return ParseResult(
            workout=result.workout, warnings=warnings, confidence=confidence
        )

    logger.info(
        "Oracle workout failed validation with %d issue(s); repairing",
        len(result.issues),
    )
    for issue in result.issues:
        logger.debug("validation issue: %s", issue)

    report = repair_report(raw)
    for note in report.notes:
        logger.debug("repair: %s", note)

    return ParseResult(
        workout=report.workout,
        warnings=[*warnings, REPAIR_WARNING],
        confidence=min(confidence, REPAIR_CONFIDENCE_CEILING),
    )
