"""JSON log output."""
import json
import logging
import warnings

from pythonjsonlogger.json import JsonFormatter

from salon.logging_config import configure_logging


def test_console_logs_are_json():
    with warnings.catch_warnings():
        warnings.simplefilter("error", DeprecationWarning)
        configure_logging()

    formatters = [h.formatter for h in logging.getLogger().handlers if isinstance(h.formatter, JsonFormatter)]
    assert formatters

    record = logging.LogRecord("salon.test", logging.INFO, __file__, 1, "booking.created", None, None)
    record.slot_id = 7
    line = json.loads(formatters[0].format(record))
    assert line["message"] == "booking.created"
    assert line["levelname"] == "INFO"
    assert line["slot_id"] == 7
