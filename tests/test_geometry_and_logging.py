import io
import logging

import pytest

from quickroute.core.logging import configure_logging
from quickroute.core.tracing import get_run_id, new_run_id, reset_run_id, set_run_id
from quickroute.domain.geometry import format_distance, format_duration, haversine_km


@pytest.mark.parametrize(
    "meters, metric, expected",
    [
        (850, True, "850 m"),
        (12340, True, "12.3 km"),
        (100, False, "328 ft"),
        (12070.08, False, "7.5 mi"),
    ],
)
def test_format_distance(meters, metric, expected):
    assert format_distance(meters, metric=metric) == expected


@pytest.mark.parametrize(
    "seconds, expected",
    [(0, "0 min"), (720, "12 min"), (3900, "1 h 05 min"), (7260, "2 h 01 min")],
)
def test_format_duration(seconds, expected):
    assert format_duration(seconds) == expected


def test_haversine_km_is_symmetric():
    there = haversine_km(56.3268, 44.0059, 55.7558, 37.6173)
    back = haversine_km(55.7558, 37.6173, 56.3268, 44.0059)

    assert there == pytest.approx(back)
    assert 380 < there < 420


def test_new_run_id_replaces_malformed_values():
    assert new_run_id("ABCDEF12-3456") == "abcdef12-3456"
    assert new_run_id("not a run id!") != "not a run id!"
    assert len(new_run_id()) == 32


def test_log_records_carry_run_id():
    stream = io.StringIO()
    logger = configure_logging("quickroute.test", "INFO", stream=stream)

    token = set_run_id("0123456789abcdef")
    try:
        logger.info("planning")
    finally:
        reset_run_id(token)

    assert "run_id=0123456789abcdef | planning" in stream.getvalue()
    assert get_run_id() == "-"
    logging.getLogger().handlers.clear()
