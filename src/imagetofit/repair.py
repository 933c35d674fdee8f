"""Best-effort repair of workout-shaped data that fails validation.

The parsing oracle usually gets the structure right but the numbers wrong:
powers above 200 %, zero durations, a missing name. Rather than rejecting the
whole parse, each field is coerced on its own:

- powers are clamped into range, or take a per-kind default when missing
- durations that are missing or not positive take a per-kind default;
  positive durations are kept however large
- ``repeat`` is raised to at least one
- the name is truncated, or replaced by a placeholder when missing

Steps whose ``type`` is missing or unknown are dropped, never guessed.
The result is a valid ``Workout`` by construction.
"""

import math
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field

from imagetofit.models.workout import (
    DURATION_FLOOR_S,
    MIN_REPEAT,
    NAME_MAX_LENGTH,
    POWER_MAX_PCT,
    POWER_MIN_PCT,
    STEP_MODELS,
    CooldownStep,
    FreerideStep,
    IntervalsStep,
    SteadyStep,
    Step,
    WarmupStep,
    Workout,
)

PLACEHOLDER_NAME = "Untitled Workout"

_DEFAULT_DURATION_S = 300
_DEFAULT_INTERVAL_DURATION_S = 60


class UnrepairableWorkoutError(ValueError):
    """Raised when a candidate is not workout-shaped enough to repair."""


@dataclass
class RepairReport:
    """A repaired workout and a note for every field that was changed."""

    workout: Workout
    notes: list[str] = field(default_factory=list)


# ---------------------------------------------------------------------------
# Field coercion
# ---------------------------------------------------------------------------


def _number(raw: object) -> float | None:
    """Return ``raw`` as a finite float, or None when it is not a number."""
    if isinstance(raw, bool) or raw is None:
        return None
    if isinstance(raw, (int, float)):
        value = float(raw)
    elif isinstance(raw, str):
        try:
            value = float(raw.strip())
        except ValueError:
            return None
    else:
        return None
    return value if math.isfinite(value) else None


class _StepFixer:
    """Coerces the fields of one raw step, recording what it changed."""

    def __init__(self, raw: Mapping, path: str, notes: list[str]) -> None:  # type: ignore[type-arg]
        self._raw = raw
        self._path = path
        self._notes = notes

    def _note(self, key: str, message: str) -> None:
        self._notes.append(f"{self._path}.{key}: {message}")

    def power(self, key: str, default: float) -> float:
        raw = self._raw.get(key)
        value = _number(raw)
        if value is None:
            self._note(key, f"missing or invalid, defaulted to {default:g}")
            return default
        clamped = min(max(value, POWER_MIN_PCT), POWER_MAX_PCT) + 0.0
        if clamped != value:
            self._note(key, f"clamped {value:g} to {clamped:g}")
        return clamped

    def duration(self, key: str, default: int) -> int:
        raw = self._raw.get(key)
        value = _number(raw)
        seconds = round(value) if value is not None else None
        if seconds is None or seconds <= DURATION_FLOOR_S:
            self._note(key, f"missing or not positive, defaulted to {default}s")
            return default
        if seconds != value:
            self._note(key, f"rounded {value:g} to {seconds}s")
        return seconds

    def repeat(self, key: str = "repeat") -> int:
        value = _number(self._raw.get(key))
        if value is None:
            self._note(key, f"missing or invalid, defaulted to {MIN_REPEAT}")
            return MIN_REPEAT
        count = max(MIN_REPEAT, round(value))
        if count != value:
            self._note(key, f"adjusted {value:g} to {count}")
        return count


# ---------------------------------------------------------------------------
# Per-kind repair
# ---------------------------------------------------------------------------


def _warmup(fix: _StepFixer) -> Step:
    return WarmupStep(
        duration_s=fix.duration("duration_s", _DEFAULT_DURATION_S),
        power_start_pct=fix.power("power_start_pct", 50),
        power_end_pct=fix.power("power_end_pct", 75),
    )


def _cooldown(fix: _StepFixer) -> Step:
    return CooldownStep(
        duration_s=fix.duration("duration_s", _DEFAULT_DURATION_S),
        power_start_pct=fix.power("power_start_pct", 70),
        power_end_pct=fix.power("power_end_pct", 40),
    )


def _steady(fix: _StepFixer) -> Step:
    return SteadyStep(
        duration_s=fix.duration("duration_s", _DEFAULT_DURATION_S),
        power_pct=fix.power("power_pct", 75),
    )


def _intervals(fix: _StepFixer) -> Step:
    return IntervalsStep(
        repeat=fix.repeat(),
        on_duration_s=fix.duration("on_duration_s", _DEFAULT_INTERVAL_DURATION_S),
        off_duration_s=fix.duration("off_duration_s", _DEFAULT_INTERVAL_DURATION_S),
        on_power_pct=fix.power("on_power_pct", 100),
        off_power_pct=fix.power("off_power_pct", 50),
    )


def _freeride(fix: _StepFixer) -> Step:
    return FreerideStep(duration_s=fix.duration("duration_s", _DEFAULT_DURATION_S))


_STEP_REPAIRERS: dict[str, Callable[[_StepFixer], Step]] = {
    "warmup": _warmup,
    "cooldown": _cooldown,
    "steady": _steady,
    "intervals": _intervals,
    "freeride": _freeride,
}


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def _repair_name(raw: object, notes: list[str]) -> str:
    if not isinstance(raw, str) or not raw:
        notes.append(f"name: missing, replaced with {PLACEHOLDER_NAME!r}")
        return PLACEHOLDER_NAME
    if len(raw) > NAME_MAX_LENGTH:
        notes.append(f"name: truncated to {NAME_MAX_LENGTH} characters")
        return raw[:NAME_MAX_LENGTH]
    return raw


def repair_report(candidate: object) -> RepairReport:
    """Coerce ``candidate`` into a valid workout and explain what changed.

    Raises:
        UnrepairableWorkoutError: ``candidate`` is not a mapping, has no step
            list, or has no step of a known kind.
    """
    if not isinstance(candidate, Mapping):
        raise UnrepairableWorkoutError("Workout must be an object")

    raw_steps = candidate.get("steps")
    if not isinstance(raw_steps, (list, tuple)):
        raise UnrepairableWorkoutError("Workout field 'steps' must be an array")

    notes: list[str] = []
    name = _repair_name(candidate.get("name"), notes)

    description = candidate.get("description")
    if description is not None and not isinstance(description, str):
        notes.append("description: not text, dropped")
        description = None

    steps: list[Step] = []
    for i, raw in enumerate(raw_steps):
        path = f"steps[{i}]"
        if not isinstance(raw, Mapping):
            notes.append(f"{path}: not an object, dropped")
            continue
        kind = raw.get("type")
        repairer = _STEP_REPAIRERS.get(kind) if isinstance(kind, str) else None
        if repairer is None:
            notes.append(f"{path}: unknown step type {kind!r}, dropped")
            continue
        known = STEP_MODELS[kind].model_fields
        extra = sorted(str(k) for k in raw if k not in known)
        if extra:
            notes.append(f"{path}: ignored unexpected fields {', '.join(extra)}")
        steps.append(repairer(_StepFixer(raw, path, notes)))

    if not steps:
        raise UnrepairableWorkoutError("Workout has no step of a known type")

    workout = Workout(name=name, description=description, steps=steps)
    return RepairReport(workout=workout, notes=notes)


def repair(candidate: object) -> Workout:
    """Return a valid workout built from ``candidate``; see ``repair_report``."""
    return repair_report(candidate).workout

