"""Canonical structured-workout models.

A workout is a named, ordered list of steps. Each step is one of five closed
kinds, discriminated by its ``type`` tag. Power is a percentage of FTP and
durations are whole seconds.

The bounds below are the single source of truth for what counts as a valid
workout: the repair pass reads them from here rather than restating them.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic_core import PydanticCustomError

NAME_MIN_LENGTH = 1
NAME_MAX_LENGTH = 100

POWER_MIN_PCT = 0.0
POWER_MAX_PCT = 200.0

# Durations must be strictly greater than this.
DURATION_FLOOR_S = 0

MIN_REPEAT = 1

StepType = Literal["warmup", "cooldown", "steady", "intervals", "freeride"]

STEP_TYPES: tuple[str, ...] = ("warmup", "cooldown", "steady", "intervals", "freeride")


def _reject_bool(value: object) -> object:
    # Lax mode would otherwise read JSON true/false as 1/0.
    if isinstance(value, bool):
        raise PydanticCustomError(
            "bool_not_number", "Input should be a number, not a boolean"
        )
    return value


NotBool = BeforeValidator(_reject_bool)

PowerPct = Annotated[
    float,
    NotBool,
    Field(ge=POWER_MIN_PCT, le=POWER_MAX_PCT, description="Power as % of FTP"),
]
DurationS = Annotated[
    int,
    NotBool,
    Field(gt=DURATION_FLOOR_S, description="Duration in whole seconds"),
]


class _StepBase(BaseModel):
    model_config = ConfigDict(extra="forbid")


class WarmupStep(_StepBase):
    """Gradual ramp up from ``power_start_pct`` to ``power_end_pct``."""

    type: Literal["warmup"] = "warmup"
    duration_s: DurationS
    power_start_pct: PowerPct
    power_end_pct: PowerPct


class CooldownStep(_StepBase):
    """Gradual ramp down from ``power_start_pct`` to ``power_end_pct``."""

    type: Literal["cooldown"] = "cooldown"
    duration_s: DurationS
    power_start_pct: PowerPct
    power_end_pct: PowerPct


class SteadyStep(_StepBase):
    """Constant power for a fixed duration."""

    type: Literal["steady"] = "steady"
    duration_s: DurationS
    power_pct: PowerPct


class IntervalsStep(_StepBase):
    """Repeated on/off blocks with the same duration and power each time."""

    type: Literal["intervals"] = "intervals"
    repeat: Annotated[int, NotBool] = Field(
        ge=MIN_REPEAT, description="Number of on/off repetitions"
    )
    on_duration_s: DurationS
    off_duration_s: DurationS
    on_power_pct: PowerPct
    off_power_pct: PowerPct


class FreerideStep(_StepBase):
    """Unstructured riding time, used when the content is unclear."""

    type: Literal["freeride"] = "freeride"
    duration_s: DurationS


Step = Annotated[
    WarmupStep | CooldownStep | SteadyStep | IntervalsStep | FreerideStep,
    Field(discriminator="type"),
]

STEP_MODELS: dict[str, type[_StepBase]] = {
    "warmup": WarmupStep,
    "cooldown": CooldownStep,
    "steady": SteadyStep,
    "intervals": IntervalsStep,
    "freeride": FreerideStep,
}


class Workout(BaseModel):
    """One complete training session.

    Unknown top-level keys are ignored so an oracle response carrying
    ``warnings`` and ``confidence`` next to the workout fields still
    validates as a workout.
    """

    model_config = ConfigDict(extra="ignore")

    name: str = Field(min_length=NAME_MIN_LENGTH, max_length=NAME_MAX_LENGTH)
    description: str | None = None
    steps: list[Step] = Field(
        min_length=1, description="Steps in playback order; never reordered."
    )
