"""Schema validation for candidate workouts.

Candidates come from the parsing oracle, from edited UI state, or from an
export request body, and none of them are trusted. ``validate`` never raises
for bad input: it reports every violated constraint with the path of the
offending field, e.g. ``steps[2].duration_s``.
"""

from dataclasses import dataclass, field

from pydantic import BaseModel, ValidationError

from imagetofit.models.workout import (
    MIN_REPEAT,
    NAME_MAX_LENGTH,
    POWER_MAX_PCT,
    POWER_MIN_PCT,
    STEP_TYPES,
    Workout,
)

_POWER_FIELDS = {
    "power_start_pct",
    "power_end_pct",
    "power_pct",
    "on_power_pct",
    "off_power_pct",
}
_POWER_MESSAGE = f"Power must be {POWER_MIN_PCT:g}-{POWER_MAX_PCT:g}% FTP"

_MESSAGES: dict[tuple[str, str], str] = {
    ("missing", "name"): "Workout name is required",
    ("string_too_short", "name"): "Workout name is required",
    ("string_too_long", "name"): (
        f"Workout name must be {NAME_MAX_LENGTH} characters or less"
    ),
    ("missing", "steps"): "At least one step is required",
    ("too_short", "steps"): "At least one step is required",
    ("greater_than", "duration_s"): "Duration must be positive",
    ("greater_than", "on_duration_s"): "On duration must be positive",
    ("greater_than", "off_duration_s"): "Off duration must be positive",
    ("greater_than_equal", "repeat"): (
        f"At least {MIN_REPEAT} repetition required"
    ),
}

_TAG_ERRORS = {"union_tag_invalid", "union_tag_not_found"}


@dataclass(frozen=True)
class ValidationIssue:
    """One violated constraint."""

    path: str
    message: str

    def __str__(self) -> str:
        return f"{self.path or 'workout'}: {self.message}"


class WorkoutValidationError(ValueError):
    """Raised when a workout that must be valid is not."""

    def __init__(self, issues: list[ValidationIssue]) -> None:
        self.issues = issues
        detail = "; ".join(str(issue) for issue in issues)
        super().__init__(f"Invalid workout: {detail}")


@dataclass(frozen=True)
class ValidationResult:
    """Outcome of ``validate``: a workout, or the reasons there is none."""

    workout: Workout | None = None
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.workout is not None

    def raise_for_issues(self) -> Workout:
        if self.workout is None:
            raise WorkoutValidationError(self.issues)
        return self.workout


def validate(candidate: object) -> ValidationResult:
    """Check ``candidate`` against the workout schema.

    Top-level fields are reported before any step, steps in sequence order,
    and each step's fields in declaration order.
    """
    if isinstance(candidate, BaseModel):
        # Models built in memory may have been mutated since construction.
        candidate = candidate.model_dump()

    try:
        workout = Workout.model_validate(candidate)
    except ValidationError as exc:
        return ValidationResult(issues=[_to_issue(err) for err in exc.errors()])
    return ValidationResult(workout=workout)


def _to_issue(error: dict) -> ValidationIssue:  # type: ignore[type-arg]
    loc = tuple(error["loc"])
    kind = error["type"]
    path = _format_path(loc)

    if kind in _TAG_ERRORS:
        path = f"{path}.type" if path else "type"
        return ValidationIssue(path, _tag_message(error))

    field_name = next((p for p in reversed(loc) if isinstance(p, str)), "")
    if field_name in _POWER_FIELDS and kind in ("greater_than_equal", "less_than_equal"):
        return ValidationIssue(path, _POWER_MESSAGE)
    message = _MESSAGES.get((kind, field_name), error["msg"])
    return ValidationIssue(path, message)


def _tag_message(error: dict) -> str:  # type: ignore[type-arg]
    expected = ", ".join(STEP_TYPES)
    if error["type"] == "union_tag_not_found":
        return f"Step type is required (one of: {expected})"
    tag = (error.get("ctx") or {}).get("tag")
    return f"Unknown step type {tag!r} (expected one of: {expected})"


def _format_path(loc: tuple) -> str:  # type: ignore[type-arg]
    """Render a pydantic location as ``steps[2].duration_s``.

    Pydantic puts the discriminator value after a tagged-union index
    (``('steps', 2, 'warmup', 'duration_s')``); that segment is dropped.
    """
    parts: list[str] = []
    previous: object = None
    for segment in loc:
        if isinstance(segment, int):
            parts.append(f"[{segment}]")
        elif isinstance(previous, int) and segment in STEP_TYPES:
            pass
        else:
            parts.append(f".{segment}" if parts else str(segment))
        previous = segment
    return "".join(parts)
