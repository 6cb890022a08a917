import json
import logging

from sheettiles.logging import JSONFormatter, KeyValueFormatter, record_fields


def _record(**extra):  # type: ignore[no-untyped-def]
    record = logging.LogRecord("sheettiles.test", logging.INFO, __file__, 1, "uploaded %s", ("tile",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_record_fields_only_returns_extra() -> None:
    assert record_fields(_record(record_id="sv-1", level=3)) == {"record_id": "sv-1", "level": 3}
    assert record_fields(_record()) == {}


def test_json_formatter_includes_extra_fields() -> None:
    payload = json.loads(JSONFormatter().format(_record(record_id="sv-1")))

    assert payload["message"] == "uploaded tile"
    assert payload["level"] == "INFO"
    assert payload["logger"] == "sheettiles.test"
    assert payload["record_id"] == "sv-1"


def test_key_value_formatter_appends_sorted_pairs() -> None:
    formatter = KeyValueFormatter("%(levelname)s %(message)s")

    assert formatter.format(_record()) == "INFO uploaded tile"
    assert formatter.format(_record(path="a/b.webp", level=2)) == "INFO uploaded tile | level=2 path=a/b.webp"
