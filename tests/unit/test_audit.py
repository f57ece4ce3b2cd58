"""
Unit Tests for the Audit Recorder
"""
import json

from healthscore.core.scoring.audit import AuditEntry, AuditRecorder, AuditStage


class TestAuditRecorder:

    def test_records_in_order(self):
        recorder = AuditRecorder()
        recorder.record(AuditStage.MAPPING, "first")
        recorder.record(AuditStage.RULE_PROCESSING, "second", metric_id="BD10034", cap_value=3)
        recorder.record(AuditStage.MAPPING, "third")

        assert len(recorder) == 3
        assert [e.message for e in recorder.entries] == ["first", "second", "third"]
        assert [e.message for e in recorder.by_stage(AuditStage.MAPPING)] == ["first", "third"]
        assert recorder.by_stage(AuditStage.FINAL_RESULT) == ()

    def test_entries_are_a_snapshot(self):
        recorder = AuditRecorder()
        recorder.record(AuditStage.MAPPING, "one")
        entries = recorder.entries
        recorder.record(AuditStage.MAPPING, "two")
        assert len(entries) == 1

    def test_entry_to_dict(self):
        entry = AuditEntry(AuditStage.DASHBOARD_CAPPING, "capped", "BD10032", {"cap_score": 65})
        data = entry.to_dict()
        assert data == {
            "stage": "dashboard_capping",
            "message": "capped",
            "metric_id": "BD10032",
            "details": {"cap_score": 65},
        }
        json.dumps(data)

    def test_five_stages(self):
        assert [s.value for s in AuditStage] == [
            "mapping",
            "rule_processing",
            "normalization",
            "dashboard_capping",
            "final_result",
        ]
