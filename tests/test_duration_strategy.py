"""
Tests for duration selection and the duration catalog.
"""
import pytest

from quickworkout.models.duration import COMPLEXITY_ORDER, VARIABLE_REQUIREMENT_ORDER
from quickworkout.services.duration_catalog import (
    DURATION_CONFIGS,
    SUPPORTED_DURATIONS,
    get_duration_config,
    get_exercise_count,
    get_time_allocation,
)
from quickworkout.services.duration_strategy import DurationStrategy, closest_supported_duration


@pytest.fixture
def strategy():
    return DurationStrategy()


class TestDurationCatalog:
    """Tests for the static duration configs."""

    def test_supported_durations(self):
        """Catalog covers the six canonical durations in order."""
        assert SUPPORTED_DURATIONS == (5, 10, 15, 20, 30, 45)

    @pytest.mark.parametrize("duration", [5, 10, 15, 20, 30, 45])
    def test_allocation_sums_to_100(self, duration):
        """Every phase split adds up to the whole workout."""
        allocation = DURATION_CONFIGS[duration].timeAllocation
        assert allocation.warmupPercent + allocation.mainPercent + allocation.cooldownPercent == 100

    @pytest.mark.parametrize("duration", [5, 10, 15, 20, 30, 45])
    def test_exercise_total_matches_phases(self, duration):
        """Total exercise count equals the sum of the phase counts."""
        counts = get_exercise_count(duration)
        assert counts.total == counts.warmup + counts.main + counts.cooldown

    def test_exercise_counts_grow_with_duration(self):
        """Longer workouts never expect fewer exercises."""
        totals = [get_exercise_count(d).total for d in SUPPORTED_DURATIONS]
        assert totals == sorted(totals)

    def test_tiers_grow_with_duration(self):
        """Complexity and variable requirements never drop for longer workouts."""
        complexity = [COMPLEXITY_ORDER.index(DURATION_CONFIGS[d].complexity) for d in SUPPORTED_DURATIONS]
        requirements = [
            VARIABLE_REQUIREMENT_ORDER.index(DURATION_CONFIGS[d].variableRequirements)
            for d in SUPPORTED_DURATIONS
        ]

        assert complexity == sorted(complexity)
        assert requirements == sorted(requirements)

    def test_unknown_duration_falls_back_to_default(self):
        """Non-canonical durations resolve to the 30-minute config."""
        assert get_duration_config(99).duration == 30

    def test_time_allocation_in_minutes(self):
        """Phase minutes are rounded from the percent split."""
        assert get_time_allocation(30) == {"warmup": 4, "main": 22, "cooldown": 4}
        assert get_time_allocation(5) == {"warmup": 1, "main": 3, "cooldown": 1}

    def test_configs_are_frozen(self):
        """Catalog entries cannot be mutated."""
        with pytest.raises(Exception):
            DURATION_CONFIGS[5].name = "Changed"


class TestClosestDuration:
    """Tests for nearest canonical duration lookup."""

    def test_nearest_duration(self):
        """Picks the closest canonical value."""
        assert closest_supported_duration(7) == 5
        assert closest_supported_duration(12) == 10
        assert closest_supported_duration(40) == 45

    def test_tie_prefers_shorter(self):
        """Equidistant requests resolve to the shorter duration."""
        assert closest_supported_duration(25) == 20

    def test_out_of_range(self):
        """Requests outside the catalog clamp to its ends."""
        assert closest_supported_duration(1) == 5
        assert closest_supported_duration(120) == 45


class TestSelectStrategy:
    """Tests for DurationStrategy.select_strategy."""

    @pytest.mark.parametrize("duration", [5, 10, 15, 20, 30, 45])
    def test_canonical_duration_is_exact(self, strategy, make_context, duration):
        """Canonical durations with neutral context are kept as-is."""
        result = strategy.select_strategy(make_context(duration=duration))

        assert result.adjustedDuration == duration
        assert result.isExactMatch is True
        assert result.adjustmentReason is None
        assert result.config.duration == duration

    def test_unsupported_duration(self, strategy, make_context):
        """Unsupported durations snap to the nearest one with a reason."""
        result = strategy.select_strategy(make_context(duration=7))

        assert result.adjustedDuration == 5
        assert result.isExactMatch is False
        assert "7min duration not directly supported" in result.adjustmentReason

    def test_supported_durations_listed(self, strategy):
        """The strategy reports the catalog durations."""
        assert strategy.get_supported_durations() == [5, 10, 15, 20, 30, 45]

    def test_tie_resolves_shorter(self, strategy, make_context):
        """A 25 minute request becomes 20 minutes."""
        result = strategy.select_strategy(make_context(duration=25))
        assert result.adjustedDuration == 20

    def test_low_energy_steps_down(self, strategy, make_context):
        """Low energy shortens a long workout and says why."""
        result = strategy.select_strategy(make_context(duration=45, energyLevel=2))

        assert result.adjustedDuration == 30
        assert result.isExactMatch is False
        assert "low energy" in result.adjustmentReason

    def test_low_energy_respects_floor(self, strategy, make_context):
        """Low energy never drops below ten minutes."""
        result = strategy.select_strategy(make_context(duration=10, energyLevel=1))

        assert result.adjustedDuration == 10
        assert result.isExactMatch is True

    def test_high_soreness_steps_down(self, strategy, make_context):
        """Three or more sore areas shorten the workout."""
        result = strategy.select_strategy(
            make_context(duration=30, sorenessAreas=["legs", "back", "shoulders"])
        )

        assert result.adjustedDuration == 20
        assert "high soreness (3 areas)" in result.adjustmentReason

    def test_few_sore_areas_keep_duration(self, strategy, make_context):
        """One or two sore areas do not change the duration."""
        result = strategy.select_strategy(make_context(duration=30, sorenessAreas=["legs"]))
        assert result.adjustedDuration == 30

    def test_beginner_cap(self, strategy, make_context):
        """Beginners are capped at thirty minutes."""
        result = strategy.select_strategy(
            make_context(duration=45, fitnessLevel="new to exercise")
        )

        assert result.adjustedDuration == 30
        assert "beginner cap" in result.adjustmentReason

    def test_reasons_are_joined(self, strategy, make_context):
        """Several adjustments are reported together."""
        result = strategy.select_strategy(make_context(duration=40, energyLevel=2))

        assert result.adjustedDuration == 30
        assert "40min duration not directly supported" in result.adjustmentReason
        assert "; " in result.adjustmentReason

    def test_adjusted_duration_always_canonical(self, strategy, make_context):
        """Any valid request maps to a canonical duration."""
        for requested in range(1, 120, 7):
            for energy in (1, 5, 10):
                result = strategy.select_strategy(
                    make_context(duration=requested, energyLevel=energy)
                )
                assert result.adjustedDuration in SUPPORTED_DURATIONS

    def test_alternatives(self, strategy, make_context):
        """Three alternatives ordered by distance, excluding the selection."""
        result = strategy.select_strategy(make_context(duration=20))
        alternatives = [alt.duration for alt in result.alternativeOptions]

        assert alternatives == [15, 10, 30]

    def test_recommendations(self, strategy, make_context):
        """Context produces matching recommendations."""
        result = strategy.select_strategy(make_context(
            duration=5, energyLevel=2, sorenessAreas=["knees"], fitnessLevel="new to exercise"
        ))
        text = " ".join(result.recommendations)

        assert "low energy" in text
        assert "knees" in text
        assert "Short 5min workout" in text
        assert "Body weight workout" in text
        assert "new to exercise" in text

    def test_high_energy_recommendation(self, strategy, make_context):
        """High energy suggests an intense session."""
        result = strategy.select_strategy(
            make_context(duration=30, energyLevel=9, equipment=["mat", "bands", "dumbbells"])
        )
        text = " ".join(result.recommendations)

        assert "High energy level (9/10)" in text
        assert "Good equipment variety" in text


class TestValidateStrategy:
    """Tests for DurationStrategy.validate_strategy."""

    def test_valid_result(self, strategy, make_context):
        """Results from select_strategy validate."""
        context = make_context(duration=7)
        result = strategy.select_strategy(context)
        assert strategy.validate_strategy(result, context) is True

    def test_config_mismatch(self, strategy, make_context):
        """A result whose config disagrees with its duration is rejected."""
        context = make_context(duration=20)
        result = strategy.select_strategy(context)
        broken = result.model_copy(update={"adjustedDuration": 30})

        assert strategy.validate_strategy(broken, context) is False

    def test_non_canonical_duration(self, strategy, make_context):
        """A result pointing outside the catalog is rejected."""
        context = make_context(duration=20)
        result = strategy.select_strategy(context)
        broken = result.model_copy(update={"adjustedDuration": 17})

        assert strategy.validate_strategy(broken, context) is False


class TestDurationOptimization:
    """Tests for DurationStrategy.create_duration_optimization."""

    def test_phase_allocation_seconds(self, strategy, make_context):
        """Phase targets are rounded from the adjusted duration."""
        context = make_context(duration=30)
        result = strategy.select_strategy(context)
        optimization = strategy.create_duration_optimization(context, result)

        assert optimization.phaseAllocation.warmup == 234
        assert optimization.phaseAllocation.main == 1332
        assert optimization.phaseAllocation.cooldown == 234
        assert optimization.isOptimal is True

    def test_adjusted_request(self, strategy, make_context):
        """Adjusted requests explain the change."""
        context = make_context(duration=7)
        result = strategy.select_strategy(context)
        optimization = strategy.create_duration_optimization(context, result)

        assert optimization.requestedDuration == 7
        assert optimization.actualDuration == 5
        assert optimization.isOptimal is False
        assert any("Adjusted from 7min to 5min" in r for r in optimization.recommendations)
        assert optimization.alternativeDurations == [10, 15, 20]
