"""Encode a workout as a Zwift ``.zwo`` XML document.

The output is consumed by Zwift, TrainingPeaks and other importers that parse
it strictly, so element names, attribute order and number formatting are
fixed:

    <?xml version="1.0" encoding="UTF-8"?>
    <workout_file>
      <author>ImageToFit</author>
      <name>Sweet Spot 45!</name>
      <sportType>bike</sportType>
      <workout>
        <IntervalsT Repeat="3" OnDuration="300" OffDuration="120" OnPower="0.95" OffPower="0.55"/>
      </workout>
    </workout_file>

Power is written as a ratio of FTP with exactly two decimals ("0.50", not
"0.5"); durations and repeat counts as plain integers.
"""

import re
from typing import assert_never
from xml.sax.saxutils import escape

from imagetofit.models.api import ZwoExport
from imagetofit.models.workout import (
    CooldownStep,
    FreerideStep,
    IntervalsStep,
    SteadyStep,
    Step,
    WarmupStep,
    Workout,
)
from imagetofit.validation import validate

ZWO_AUTHOR = "ImageToFit"
ZWO_SPORT_TYPE = "bike"
ZWO_EXTENSION = ".zwo"
FALLBACK_FILENAME = "workout"

_INDENT = "  "

# escape() always handles &, < and > (ampersand first); quotes are added here.
_QUOTE_ENTITIES = {'"': "&quot;", "'": "&apos;"}


# ---------------------------------------------------------------------------
# Formatting helpers
# ---------------------------------------------------------------------------


def _escape_text(text: str) -> str:
    return escape(text, _QUOTE_ENTITIES)


def _power(pct: float) -> str:
    """Format a % of FTP as a two-decimal ratio: 50 -> "0.50"."""
    # Adding 0.0 turns -0.0 into 0.0 so it never prints as "-0.00".
    return f"{pct / 100 + 0.0:.2f}"


def _element(tag: str, attrs: list[tuple[str, str]]) -> str:
    rendered = " ".join(f'{key}="{value}"' for key, value in attrs)
    return f"{_INDENT * 2}<{tag} {rendered}/>"


# ---------------------------------------------------------------------------
# Step elements
# ---------------------------------------------------------------------------


def _step_element(step: Step) -> str:
    match step:
        case WarmupStep():
            return _element(
                "Warmup",
                [
                    ("Duration", str(step.duration_s)),
                    ("PowerLow", _power(step.power_start_pct)),
                    ("PowerHigh", _power(step.power_end_pct)),
                ],
            )
        case CooldownStep():
            return _element(
                "Cooldown",
                [
                    ("Duration", str(step.duration_s)),
                    ("PowerLow", _power(step.power_start_pct)),
                    ("PowerHigh", _power(step.power_end_pct)),
                ],
            )
        case SteadyStep():
            return _element(
                "SteadyState",
                [
                    ("Duration", str(step.duration_s)),
                    ("Power", _power(step.power_pct)),
                ],
            )
        case IntervalsStep():
            return _element(
                "IntervalsT",
                [
                    ("Repeat", str(step.repeat)),
                    ("OnDuration", str(step.on_duration_s)),
                    ("OffDuration", str(step.off_duration_s)),
                    ("OnPower", _power(step.on_power_pct)),
                    ("OffPower", _power(step.off_power_pct)),
                ],
            )
        case FreerideStep():
            return _element("FreeRide", [("Duration", str(step.duration_s))])
        case _:
            assert_never(step)


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def encode(workout: Workout) -> str:
    """Render ``workout`` as ``.zwo`` XML text.

    The workout must already be valid; this function does not re-check it.
    The description element is written only when the description has
    non-whitespace content.
    """
    lines = [
        '<?xml version="1.0" encoding="UTF-8"?>',
        "<workout_file>",
        f"{_INDENT}<author>{ZWO_AUTHOR}</author>",
        f"{_INDENT}<name>{_escape_text(workout.name)}</name>",
    ]
    if workout.description and workout.description.strip():
        lines.append(
            f"{_INDENT}<description>{_escape_text(workout.description)}</description>"
        )
    lines.append(f"{_INDENT}<sportType>{ZWO_SPORT_TYPE}</sportType>")
    lines.append(f"{_INDENT}<workout>")
    lines.extend(_step_element(step) for step in workout.steps)
    lines.append(f"{_INDENT}</workout>")
    lines.append("</workout_file>")
    return "\n".join(lines)


def slugify(name: str) -> str:
    """Derive a safe ``.zwo`` filename from a free-text workout name.

    Non-ASCII letters are dropped, not transliterated, and an empty result
    falls back to ``workout.zwo``.
    """
    slug = name.lower()
    slug = re.sub(r"\s+", "-", slug)
    slug = re.sub(r"[^a-z0-9-]", "", slug)
    slug = re.sub(r"-+", "-", slug)
    slug = slug.strip("-")
    return f"{slug or FALLBACK_FILENAME}{ZWO_EXTENSION}"


def export_workout(candidate: object) -> ZwoExport:
    """Validate ``candidate`` and return its XML together with its filename.

    Accepts a bare workout or a request body of the form ``{"workout": {...}}``.

    Raises:
        WorkoutValidationError: the candidate is not a valid workout.
    """
    if isinstance(candidate, dict) and "workout" in candidate:
        candidate = candidate["workout"]
    workout = validate(candidate).raise_for_issues()
    return ZwoExport(xml=encode(workout), filename=slugify(workout.name))
