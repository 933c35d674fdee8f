"""Training-load estimates for a structured workout.

There is no recorded power stream, so normalized power is approximated from
the step targets: each step contributes its average power, raised to the 4th
power and weighted by duration. Interval steps get a small boost for the
on/off swing, which is what pushes NP above average power in real rides.

    IF  = NP / FTP
    TSS = duration_s * NP * IF / (FTP * 3600) * 100
"""

from dataclasses import dataclass
from typing import assert_never

from imagetofit.models.workout import (
    CooldownStep,
    FreerideStep,
    IntervalsStep,
    SteadyStep,
    Step,
    WarmupStep,
    Workout,
)

# Freeride has no target; assume endurance (Z2) riding.
_FREERIDE_PCT = 60.0
_INTERVAL_VARIABILITY_WEIGHT = 0.1


@dataclass(frozen=True)
class WorkoutMetrics:
    total_duration_s: int
    normalized_power: int  # watts
    average_power: int  # watts
    intensity_factor: float
    tss: int


def step_duration_s(step: Step) -> int:
    """Wall-clock length of a step, counting every interval repetition."""
    match step:
        case WarmupStep() | CooldownStep() | SteadyStep() | FreerideStep():
            return step.duration_s
        case IntervalsStep():
            return (step.on_duration_s + step.off_duration_s) * step.repeat
        case _:
            assert_never(step)


def step_average_pct(step: Step) -> float:
    """Duration-weighted mean target of a step, in % of FTP."""
    match step:
        case WarmupStep() | CooldownStep():
            return (step.power_start_pct + step.power_end_pct) / 2
        case SteadyStep():
            return step.power_pct
        case IntervalsStep():
            on_time = step.on_duration_s
            off_time = step.off_duration_s
            return (step.on_power_pct * on_time + step.off_power_pct * off_time) / (
                on_time + off_time
            )
        case FreerideStep():
            return _FREERIDE_PCT
        case _:
            assert_never(step)


def _variability(step: Step, ftp: float) -> float:
    if not isinstance(step, IntervalsStep):
        return 1.0
    swing = abs(step.on_power_pct - step.off_power_pct) / 100 * ftp
    return 1 + swing / ftp * _INTERVAL_VARIABILITY_WEIGHT


def normalized_power(steps: list[Step], ftp: float) -> float:
    weighted = 0.0
    total = 0
    for step in steps:
        duration = step_duration_s(step)
        watts = step_average_pct(step) / 100 * ftp * _variability(step, ftp)
        weighted += watts**4 * duration
        total += duration
    if total == 0:
        return 0.0
    return (weighted / total) ** 0.25


def average_power(steps: list[Step], ftp: float) -> float:
    power_sum = 0.0
    total = 0
    for step in steps:
        duration = step_duration_s(step)
        power_sum += step_average_pct(step) / 100 * ftp * duration
        total += duration
    if total == 0:
        return 0.0
    return power_sum / total


def calculate_metrics(workout: Workout, ftp: float) -> WorkoutMetrics:
    """Estimate duration, AP, NP, IF and TSS for ``workout`` at ``ftp`` watts.

    With a non-positive FTP the power figures are all zero.
    """
    total = sum(step_duration_s(step) for step in workout.steps)
    if ftp <= 0:
        return WorkoutMetrics(total, 0, 0, 0.0, 0)

    np_watts = normalized_power(workout.steps, ftp)
    ap_watts = average_power(workout.steps, ftp)
    intensity = np_watts / ftp
    tss = total * np_watts * intensity / (ftp * 3600) * 100

    return WorkoutMetrics(
        total_duration_s=total,
        normalized_power=round(np_watts),
        average_power=round(ap_watts),
        intensity_factor=round(intensity, 2),
        tss=round(tss),
    )


def format_duration(seconds: int) -> str:
    """Format seconds as ``H:MM:SS``, or ``M:SS`` under an hour."""
    hours, rest = divmod(seconds, 3600)
    mins, secs = divmod(rest, 60)
    if hours > 0:
        return f"{hours}:{mins:02d}:{secs:02d}"
    return f"{mins}:{secs:02d}"


def tss_category(tss: float) -> str:
    if tss < 50:
        return "Easy"
    if tss < 100:
        return "Moderate"
    if tss < 150:
        return "Hard"
    return "Very Hard"
