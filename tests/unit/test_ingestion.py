"""
Unit Tests for Health Data Ingestion
"""
import pytest

from healthscore.core.ingestion import bmi_from_pii, parse_health_data
from healthscore.core.scoring.base import RankEntry
from healthscore.core.scoring.biomarker_ids import MetricId as M
from healthscore.core.scoring.ranks import reading_rank
from healthscore.utils import HealthDataError


class TestParseHealthData:

    def test_readings_in_payload_order(self, make_payload):
        readings = parse_health_data(make_payload({M.HBA1C: 2, M.HDL: 5}))
        assert [r.metric_id for r in readings] == [M.HBA1C, M.HDL]
        hba1c = readings[0]
        assert hba1c.rating_label == "Borderline"
        assert hba1c.unit == "u"
        assert RankEntry("Optimal", 5) in hba1c.rank_table
        assert reading_rank(hba1c) == 2

    def test_duplicates_keep_first(self, make_payload):
        payload = make_payload({M.HBA1C: 2})
        second = dict(payload["data"]["blood"]["data"][0], display_rating="Optimal")
        payload["data"]["blood"]["data"].append(second)
        readings = parse_health_data(payload)
        assert len(readings) == 1
        assert readings[0].rating_label == "Borderline"

    @pytest.mark.parametrize("payload", [
        {},
        {"status": "success", "data": None},
        {"status": "success", "data": {"blood": None}},
        {"status": "success", "data": {"blood": {"data": []}}},
    ])
    def test_no_blood_readings(self, payload):
        assert parse_health_data(payload) == []

    def test_ranges_without_label_skipped(self):
        payload = {"data": {"blood": {"data": [{
            "metric_id": M.TSH,
            "value": "2.1",
            "display_rating": "Normal",
            "ranges": [{"rating_rank": 4}, {"display_rating": "Normal", "rating_rank": 3}],
        }]}}}
        reading = parse_health_data(payload)[0]
        assert reading.rank_table == (RankEntry("Normal", 3),)
        assert reading.unit == ""

    @pytest.mark.parametrize("payload", [
        {"data": {"blood": {"data": "oops"}}},
        {"data": {"blood": {"data": [{"value": 1.0}]}}},
        {"data": "not an object"},
    ])
    def test_malformed_payload(self, payload):
        with pytest.raises(HealthDataError) as exc_info:
            parse_health_data(payload)
        assert exc_info.value.code == "HEALTH_DATA_ERROR"
        assert exc_info.value.details["errors"]


class TestBmiFromPii:

    @pytest.mark.parametrize("height,weight,expected", [
        (175, 70, 22.86),
        ("170", "65", 22.49),
        (180.0, 100.0, 30.86),
    ])
    def test_valid(self, height, weight, expected):
        assert bmi_from_pii(height, weight) == expected

    @pytest.mark.parametrize("height,weight", [
        (None, 70),
        (175, None),
        (0, 70),
        (175, -3),
        ("tall", 70),
    ])
    def test_invalid(self, height, weight):
        assert bmi_from_pii(height, weight) is None
