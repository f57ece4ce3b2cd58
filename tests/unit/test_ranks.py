"""
Unit Tests for the Rank Resolver

Tests direct lookup, composites, substitution (incl. BMI), the
white-cell composite and the NLR band table.
"""
import math

import pytest

from healthscore.core.scoring.base import RankEntry, RuleAction, RuleActionType, RuleSet
from healthscore.core.scoring.biomarker_ids import MetricId
from healthscore.core.scoring.catalog import CATALOG, NLR_RATIO
from healthscore.core.scoring.ranks import (
    AuxiliaryInputs,
    apply_ratio_action,
    bmi_rank,
    compute_ratio,
    index_readings,
    ratio_rank,
    reading_rank,
    resolve_metric_rank,
    resolve_rank,
)

THREE_LEVEL_TABLE = (RankEntry("High", 1), RankEntry("Normal", 3), RankEntry("Low", 2))


def resolve(definition, *readings, **aux):
    return resolve_rank(definition, index_readings(readings), AuxiliaryInputs(**aux))


class TestReadingRank:

    def test_label_lookup(self, make_reading):
        assert reading_rank(make_reading(MetricId.HBA1C, 4)) == 4

    def test_unknown_label(self, make_reading):
        assert reading_rank(make_reading(MetricId.HBA1C, label="Off the chart")) is None

    def test_empty_table(self, make_reading):
        assert reading_rank(make_reading(MetricId.HBA1C, label="Optimal", table=())) is None

    def test_duplicates_keep_first(self, make_reading):
        index = index_readings([make_reading(MetricId.HBA1C, 5), make_reading(MetricId.HBA1C, 1)])
        assert reading_rank(index[MetricId.HBA1C]) == 5


class TestBmiRank:

    @pytest.mark.parametrize("value,expected", [
        (18.99, 3),
        (19.0, 5),
        (21.36, 5),
        (23.0, 5),
        (23.01, 3),
        (25.0, 3),
        (25.5, 2),
        (28.0, 2),
        (28.1, 1),
        ("22.4", 5),
    ])
    def test_bands(self, value, expected):
        assert bmi_rank(value) == expected

    @pytest.mark.parametrize("value", [None, "abc", math.nan, "nan", math.inf])
    def test_unparseable(self, value):
        assert bmi_rank(value) is None


class TestRatioRank:

    @pytest.mark.parametrize("ratio,expected", [
        (5.0, 1),
        (3.51, 1),
        (3.5, 2),
        (2.01, 2),
        (2.0, 3),
        (1.25, 3),
        (1.24, 4),
        (0.76, 4),
        (0.75, 5),
        (0.70, 5),
        (0.699, 5),   # rounds to 0.70
        (0.69, 2),
        (0.50, 2),
        (0.49, 1),
        (0.0, 1),
    ])
    def test_non_monotonic_bands(self, ratio, expected):
        assert ratio_rank(ratio, NLR_RATIO) == expected

    def test_compute_ratio(self, make_reading):
        index = index_readings([
            make_reading(MetricId.NEUTROPHILS, 3, value="4.0"),
            make_reading(MetricId.LYMPHOCYTES, 3, value=2.0),
        ])
        assert compute_ratio(NLR_RATIO, index) == 2.0

    @pytest.mark.parametrize("lymphocytes", [0, -1, None, "n/a"])
    def test_unusable_denominator(self, make_reading, lymphocytes):
        index = index_readings([
            make_reading(MetricId.NEUTROPHILS, 3, value=4.0),
            make_reading(MetricId.LYMPHOCYTES, 3, value=lymphocytes),
        ])
        assert compute_ratio(NLR_RATIO, index) is None


class TestDirectResolution:

    def test_direct(self, make_reading):
        res = resolve(CATALOG.definition_for(MetricId.HBA1C), make_reading(MetricId.HBA1C, 4, unit="%"))
        assert res.rank == 4
        assert res.metric_id_used == MetricId.HBA1C
        assert res.unit == "%"
        assert not res.is_substitute

    def test_absent(self):
        res = resolve(CATALOG.definition_for(MetricId.HBA1C))
        assert res.rank is None
        assert res.is_missing
        assert res.max_rank == 5

    def test_reading_without_value_is_missing(self, make_reading):
        res = resolve(CATALOG.definition_for(MetricId.HBA1C), make_reading(MetricId.HBA1C, 4, value=None))
        assert res.rank is None

    def test_max_rank_from_short_table(self, make_reading):
        reading = make_reading(MetricId.VITAMIN_E, label="Normal", table=THREE_LEVEL_TABLE)
        res = resolve(CATALOG.definition_for(MetricId.VITAMIN_E), reading)
        assert res.rank == 3
        assert res.max_rank == 3

    def test_resolve_metric_rank_without_definition(self, make_reading):
        index = index_readings([make_reading(MetricId.SGOT, 2)])
        assert resolve_metric_rank(MetricId.SGOT, index).rank == 2
        assert resolve_metric_rank(MetricId.SGPT, index).rank is None


class TestLowestComposite:

    def test_worst_rank_wins(self, make_reading):
        insulin = CATALOG.owner_of(MetricId.FASTING_INSULIN)
        res = resolve(
            insulin,
            make_reading(MetricId.FASTING_INSULIN, 4),
            make_reading(MetricId.PP_INSULIN, 2),
        )
        assert res.rank == 2
        assert res.metric_id_used == MetricId.PP_INSULIN
        assert res.composition_applied == "lowest"

    def test_single_contributor(self, make_reading):
        insulin = CATALOG.owner_of(MetricId.FASTING_INSULIN)
        res = resolve(insulin, make_reading(MetricId.FASTING_INSULIN, 3))
        assert res.rank == 3

    def test_none_present(self):
        res = resolve(CATALOG.owner_of(MetricId.SYSTOLIC_BP))
        assert res.rank is None

    def test_primary_takes_part(self, make_reading):
        zinc = CATALOG.definition_for(MetricId.SERUM_ZINC)
        res = resolve(zinc, make_reading(MetricId.SERUM_ZINC, 5), make_reading(MetricId.ZINC, 3))
        # A resolvable primary short-circuits the composite.
        assert res.rank == 5

    def test_unresolvable_primary_falls_through(self, make_reading):
        zinc = CATALOG.definition_for(MetricId.SERUM_ZINC)
        res = resolve(zinc, make_reading(MetricId.SERUM_ZINC, value=None), make_reading(MetricId.ZINC, 2))
        assert res.rank == 2
        assert res.metric_id_used == MetricId.ZINC

    def test_max_rank_over_contributors(self, make_reading):
        insulin = CATALOG.owner_of(MetricId.FASTING_INSULIN)
        res = resolve(
            insulin,
            make_reading(MetricId.FASTING_INSULIN, label="Low", table=THREE_LEVEL_TABLE),
            make_reading(MetricId.PP_INSULIN, 4),
        )
        assert res.max_rank == 5
        assert res.rank == 2


class TestSubstitution:

    def test_primary_preferred(self, make_reading):
        free_t = CATALOG.definition_for(MetricId.FREE_TESTOSTERONE)
        res = resolve(
            free_t,
            make_reading(MetricId.FREE_TESTOSTERONE, 5),
            make_reading(MetricId.TOTAL_TESTOSTERONE, 1),
        )
        assert res.rank == 5
        assert not res.is_substitute

    def test_related_reading_substitutes(self, make_reading):
        free_t = CATALOG.definition_for(MetricId.FREE_TESTOSTERONE)
        res = resolve(free_t, make_reading(MetricId.TOTAL_TESTOSTERONE, 3))
        assert res.rank == 3
        assert res.is_substitute
        assert res.metric_id_used == MetricId.TOTAL_TESTOSTERONE

    def test_body_fat_direct(self, make_reading):
        body_fat = CATALOG.definition_for(MetricId.BODY_FAT)
        res = resolve(body_fat, make_reading(MetricId.BODY_FAT, 4), bmi=35)
        assert res.rank == 4
        assert not res.is_substitute

    def test_body_fat_from_explicit_bmi(self):
        res = resolve(CATALOG.definition_for(MetricId.BODY_FAT), bmi=21.0, bmi_fallback=30.0)
        assert res.rank == 5
        assert res.is_substitute
        assert res.metric_id_used == MetricId.BMI
        assert res.substitute_value == 21.0

    def test_body_fat_from_bmi_reading(self, make_reading):
        res = resolve(
            CATALOG.definition_for(MetricId.BODY_FAT),
            make_reading(MetricId.BMI, 1, value=27.0),
            bmi_fallback=21.36,
        )
        assert res.rank == 2
        assert res.substitute_value == 27.0

    def test_body_fat_from_fallback(self):
        res = resolve(CATALOG.definition_for(MetricId.BODY_FAT), bmi_fallback=21.36)
        assert res.rank == 5
        assert res.substitute_value == 21.36

    def test_fallback_disabled(self):
        res = resolve(CATALOG.definition_for(MetricId.BODY_FAT), bmi_fallback=None)
        assert res.rank is None

    def test_unparseable_explicit_bmi_is_unresolvable(self):
        res = resolve(CATALOG.definition_for(MetricId.BODY_FAT), bmi="nan", bmi_fallback=21.36)
        assert res.rank is None


class TestWhiteCellComposite:

    @pytest.fixture
    def wbc(self):
        return CATALOG.definition_for(MetricId.WBC)

    def test_ratio_worse_than_direct(self, wbc, make_reading):
        res = resolve(
            wbc,
            make_reading(MetricId.WBC, 4),
            make_reading(MetricId.NEUTROPHILS, 3, value=4.0),
            make_reading(MetricId.LYMPHOCYTES, 3, value=1.0),
        )
        assert res.rank == 1
        assert res.rank_source == "ratio"
        assert res.metric_id_used == MetricId.NLR
        assert res.direct_rank == 4
        assert res.ratio_value == 4.0

    def test_direct_worse_than_ratio(self, wbc, make_reading):
        res = resolve(
            wbc,
            make_reading(MetricId.WBC, 2),
            make_reading(MetricId.NEUTROPHILS, 3, value=0.72),
            make_reading(MetricId.LYMPHOCYTES, 3, value=1.0),
        )
        assert res.rank == 2
        assert res.rank_source == "direct"
        assert res.ratio_rank == 5

    def test_ratio_only(self, wbc, make_reading):
        res = resolve(
            wbc,
            make_reading(MetricId.NEUTROPHILS, 3, value=1.5),
            make_reading(MetricId.LYMPHOCYTES, 3, value=1.0),
        )
        assert res.rank == 3
        assert res.rank_source == "ratio"

    def test_direct_only(self, wbc, make_reading):
        res = resolve(wbc, make_reading(MetricId.WBC, 4))
        assert res.rank == 4
        assert res.rank_source == "direct"
        assert res.ratio_rank is None

    def test_nothing(self, wbc):
        res = resolve(wbc)
        assert res.rank is None

    def test_ratio_suppression_restores_direct(self, wbc, make_reading):
        readings = index_readings([
            make_reading(MetricId.WBC, 4),
            make_reading(MetricId.NEUTROPHILS, 3, value=4.0),
            make_reading(MetricId.LYMPHOCYTES, 3, value=1.0),
        ])
        res = resolve_rank(wbc, readings)
        action = RuleAction(MetricId.NLR, RuleActionType.SUPPRESS, "NLR check", RuleSet.CONTEXT)
        adjusted = apply_ratio_action(wbc, res, action)
        assert adjusted.rank == 4
        assert adjusted.rank_source == "direct"
        assert adjusted.metric_id_used == MetricId.WBC

    def test_ratio_action_without_ratio_is_noop(self, wbc, make_reading):
        res = resolve_rank(wbc, index_readings([make_reading(MetricId.WBC, 4)]))
        action = RuleAction(MetricId.NLR, RuleActionType.SUPPRESS, "NLR check", RuleSet.CONTEXT)
        assert apply_ratio_action(wbc, res, action) == res
