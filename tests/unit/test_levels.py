import logging

import pytest

from logmail.levels import level_name, parse_level, qualifies


def test_level_name_for_standard_levels():
    assert level_name(logging.DEBUG) == "DEBUG"
    assert level_name(logging.INFO) == "INFO"
    assert level_name(logging.WARNING) == "WARNING"
    assert level_name(logging.ERROR) == "ERROR"
    assert level_name(logging.CRITICAL) == "CRITICAL"

def test_level_name_for_intermediate_levels():
    assert level_name(logging.ERROR + 2) == "ERROR+2"
    assert level_name(logging.DEBUG - 4) == "DEBUG-4"

@pytest.mark.parametrize("value, expected", [
    ("error", logging.ERROR),
    ("WARN", logging.WARNING),
    ("ERROR+2", logging.ERROR + 2),
    ("info-1", logging.INFO - 1),
    ("35", 35),
    (25, 25),
])
def test_parse_level(value, expected):
    assert parse_level(value) == expected

def test_parse_level_rejects_unknown_names():
    with pytest.raises(ValueError):
        parse_level("loud")
    with pytest.raises(ValueError):
        parse_level(True)

def test_qualifies_is_inclusive():
    """ O email é enviado a partir do limiar, inclusive """
    assert qualifies(logging.ERROR, logging.ERROR) is True
    assert qualifies(logging.CRITICAL, logging.ERROR) is True
    assert qualifies(logging.WARNING, logging.ERROR) is False
