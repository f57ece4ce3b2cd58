"""
Unit Tests for Structured Logging
"""
import logging

from healthscore.core.scoring.audit import AuditRecorder, AuditStage
from healthscore.utils.logging import StructuredFormatter, setup_logging


def make_record(message, **extra):
    record = logging.LogRecord("healthscore.test", logging.INFO, __file__, 1, message, None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


class TestStructuredFormatter:

    def test_plain_line(self):
        line = StructuredFormatter(colored=False).format(make_record("scored"))
        assert "INFO" in line
        assert "[healthscore.test] scored" in line
        assert "\033[" not in line

    def test_metric_id_prefix(self):
        line = StructuredFormatter(colored=False).format(make_record("capped", metric_id="BD10032"))
        assert line.endswith("(BD10032) capped")

    def test_colored(self):
        line = StructuredFormatter().format(make_record("scored"))
        assert line.startswith(StructuredFormatter.COLORS["INFO"])
        assert line.endswith(StructuredFormatter.RESET)


class TestSetupLogging:

    def test_repeated_setup_does_not_duplicate(self):
        root = logging.getLogger()
        setup_logging("DEBUG")
        setup_logging("DEBUG")
        ours = [h for h in root.handlers if isinstance(h.formatter, StructuredFormatter)]
        assert len(ours) == 1
        assert root.level == logging.DEBUG
        setup_logging("INFO")

    def test_file_handler(self, tmp_path):
        path = tmp_path / "score.log"
        setup_logging("DEBUG", str(path))
        AuditRecorder().record(AuditStage.MAPPING, "HbA1c: rank 5", metric_id="BD10034")
        for handler in logging.getLogger().handlers:
            handler.flush()
        text = path.read_text()
        assert "(BD10034) Audit [mapping] HbA1c: rank 5" in text
        assert "\033[" not in text
        setup_logging("INFO")
