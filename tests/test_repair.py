"""Tests for the repair pass over invalid oracle output."""

import math

import pytest

from imagetofit.models.workout import STEP_TYPES, Workout
from imagetofit.repair import (
    _STEP_REPAIRERS,
    PLACEHOLDER_NAME,
    UnrepairableWorkoutError,
    repair,
    repair_report,
)
from imagetofit.validation import validate
from imagetofit.zwo.encoder import encode


def _one(step: dict, **fields: object) -> dict:
    data: dict = {"name": "Test", "steps": [step]}
    data.update(fields)
    return data


class TestDispatch:
    def test_every_step_kind_has_a_repairer(self) -> None:
        assert set(_STEP_REPAIRERS) == set(STEP_TYPES)


# ---------------------------------------------------------------------------
# Field rules
# ---------------------------------------------------------------------------


class TestPower:
    def test_clamped_high(self) -> None:
        workout = repair(_one({"type": "steady", "duration_s": 60, "power_pct": 250}))
        assert workout.steps[0].power_pct == 200  # type: ignore[union-attr]

    def test_clamped_low(self) -> None:
        workout = repair(_one({"type": "steady", "duration_s": 60, "power_pct": -20}))
        assert workout.steps[0].power_pct == 0  # type: ignore[union-attr]

    def test_negative_zero_encodes_unsigned(self) -> None:
        workout = repair(_one({"type": "steady", "duration_s": 60, "power_pct": -0.0}))
        assert math.copysign(1.0, workout.steps[0].power_pct) == 1.0  # type: ignore[union-attr]
        assert '<SteadyState Duration="60" Power="0.00"/>' in encode(workout)

    def test_in_range_kept(self) -> None:
        workout = repair(_one({"type": "steady", "duration_s": 60, "power_pct": 87.5}))
        assert workout.steps[0].power_pct == 87.5  # type: ignore[union-attr]

    def test_numeric_string_accepted(self) -> None:
        workout = repair(_one({"type": "steady", "duration_s": 60, "power_pct": "300"}))
        assert workout.steps[0].power_pct == 200  # type: ignore[union-attr]

    def test_nan_defaulted(self) -> None:
        workout = repair(_one({"type": "steady", "duration_s": 60, "power_pct": math.nan}))
        assert workout.steps[0].power_pct == 75  # type: ignore[union-attr]

    def test_warmup_defaults_ramp_up(self) -> None:
        step = repair(_one({"type": "warmup", "duration_s": 600})).steps[0]
        assert (step.power_start_pct, step.power_end_pct) == (50, 75)  # type: ignore[union-attr]

    def test_cooldown_defaults_ramp_down(self) -> None:
        step = repair(_one({"type": "cooldown", "duration_s": 600})).steps[0]
        assert (step.power_start_pct, step.power_end_pct) == (70, 40)  # type: ignore[union-attr]

    def test_intervals_defaults(self) -> None:
        step = repair(_one({"type": "intervals"})).steps[0]
        assert step.model_dump() == {
            "type": "intervals",
            "repeat": 1,
            "on_duration_s": 60,
            "off_duration_s": 60,
            "on_power_pct": 100,
            "off_power_pct": 50,
        }


class TestDuration:
    @pytest.mark.parametrize("duration", [0, -5, None, "soon", True])
    def test_defaulted(self, duration: object) -> None:
        workout = repair(_one({"type": "freeride", "duration_s": duration}))
        assert workout.steps[0].duration_s == 300  # type: ignore[union-attr]

    def test_missing_defaulted(self) -> None:
        workout = repair(_one({"type": "freeride"}))
        assert workout.steps[0].duration_s == 300  # type: ignore[union-attr]

    def test_large_duration_passes_through(self) -> None:
        workout = repair(_one({"type": "freeride", "duration_s": 86_400 * 7}))
        assert workout.steps[0].duration_s == 604_800  # type: ignore[union-attr]

    def test_fraction_rounded_to_whole_seconds(self) -> None:
        workout = repair(_one({"type": "freeride", "duration_s": 90.4}))
        assert workout.steps[0].duration_s == 90  # type: ignore[union-attr]

    def test_fraction_rounding_to_zero_defaulted(self) -> None:
        workout = repair(_one({"type": "freeride", "duration_s": 0.2}))
        assert workout.steps[0].duration_s == 300  # type: ignore[union-attr]


class TestRepeat:
    @pytest.mark.parametrize(("raw", "expected"), [(0, 1), (-3, 1), (1, 1), (50, 50)])
    def test_clamped_to_at_least_one(self, raw: int, expected: int) -> None:
        workout = repair(_one({"type": "intervals", "repeat": raw}))
        assert workout.steps[0].repeat == expected  # type: ignore[union-attr]


class TestName:
    def test_missing(self) -> None:
        workout = repair({"steps": [{"type": "freeride", "duration_s": 60}]})
        assert workout.name == PLACEHOLDER_NAME

    def test_empty(self) -> None:
        assert repair(_one({"type": "freeride"}, name="")).name == PLACEHOLDER_NAME

    def test_not_text(self) -> None:
        assert repair(_one({"type": "freeride"}, name=42)).name == PLACEHOLDER_NAME

    def test_truncated(self) -> None:
        assert repair(_one({"type": "freeride"}, name="x" * 150)).name == "x" * 100

    def test_description_kept(self) -> None:
        workout = repair(_one({"type": "freeride"}, description="Legs only"))
        assert workout.description == "Legs only"

    def test_description_not_text_dropped(self) -> None:
        assert repair(_one({"type": "freeride"}, description=["a"])).description is None


# ---------------------------------------------------------------------------
# Structure
# ---------------------------------------------------------------------------


class TestStructure:
    def test_unknown_step_dropped_not_guessed(self) -> None:
        candidate = {
            "name": "Mixed",
            "steps": [
                {"type": "sprint", "duration_s": 10},
                {"type": "steady", "duration_s": 60, "power_pct": 300},
                {"duration_s": 30},
            ],
        }
        report = repair_report(candidate)
        assert [s.type for s in report.workout.steps] == ["steady"]
        assert any("sprint" in note for note in report.notes)

    def test_extra_fields_dropped(self) -> None:
        report = repair_report(
            _one({"type": "steady", "duration_s": 60, "power_pct": 50, "cadence": 90})
        )
        assert "cadence" not in report.workout.steps[0].model_dump()
        assert any("cadence" in note for note in report.notes)

    def test_order_kept(self) -> None:
        candidate = {
            "name": "Order",
            "steps": [
                {"type": "cooldown"},
                {"type": "freeride"},
                {"type": "warmup"},
            ],
        }
        assert [s.type for s in repair(candidate).steps] == ["cooldown", "freeride", "warmup"]

    def test_valid_workout_unchanged(self) -> None:
        candidate = _one(
            {"type": "warmup", "duration_s": 600, "power_start_pct": 50, "power_end_pct": 75},
            description="Spin up",
        )
        report = repair_report(candidate)
        assert report.workout.model_dump() == Workout.model_validate(candidate).model_dump()
        assert report.notes == []

    def test_notes_name_field_paths(self) -> None:
        report = repair_report(
            {"name": "N", "steps": [{"type": "steady", "duration_s": 0, "power_pct": 250}]}
        )
        assert report.notes == [
            "steps[0].duration_s: missing or not positive, defaulted to 300s",
            "steps[0].power_pct: clamped 250 to 200",
        ]

    @pytest.mark.parametrize(
        "candidate",
        [
            "not a workout",
            {"name": "No steps"},
            {"name": "Bad steps", "steps": "warmup"},
            {"name": "Only unknown", "steps": [{"type": "sprint"}]},
            {"name": "Empty", "steps": []},
        ],
    )
    def test_unrepairable(self, candidate: object) -> None:
        with pytest.raises(UnrepairableWorkoutError):
            repair(candidate)


# ---------------------------------------------------------------------------
# Totality
# ---------------------------------------------------------------------------


NOISY_CANDIDATES = [
    {"steps": [{"type": "warmup"}]},
    {"name": "", "steps": [{"type": "cooldown", "duration_s": -1, "power_start_pct": 999}]},
    {"name": "y" * 500, "steps": [{"type": "steady", "power_pct": -50}]},
    {
        "name": "Wild",
        "description": None,
        "steps": [
            {
                "type": "intervals",
                "repeat": -2,
                "on_duration_s": 0,
                "off_duration_s": "x",
                "on_power_pct": 1e9,
                "off_power_pct": -1e9,
            },
            {"type": "freeride", "duration_s": math.inf},
            {"type": "steady", "duration_s": 2.5, "power_pct": None},
        ],
    },
    {
        "name": "Oracle",
        "warnings": ["blurry"],
        "confidence": 0.9,
        "steps": [{"type": "steady", "duration_s": 300, "power_pct": 210}],
    },
]


class TestTotality:
    @pytest.mark.parametrize("candidate", NOISY_CANDIDATES)
    def test_output_always_validates(self, candidate: dict) -> None:
        workout = repair(candidate)
        assert validate(workout).ok
        assert validate(workout.model_dump()).ok
