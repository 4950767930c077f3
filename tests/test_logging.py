import logging

from brokertax.logging import level_for_verbosity
from brokertax.logging.config import ProfessionalFormatter


def test_level_for_verbosity():
    assert level_for_verbosity(0) == logging.WARNING
    assert level_for_verbosity(1) == logging.INFO
    assert level_for_verbosity(5) == logging.DEBUG
    assert level_for_verbosity(-1) == logging.WARNING


def test_formatter_uses_short_level_names():
    record = logging.LogRecord("brokertax.trading", logging.WARNING, __file__, 1, "hello %s", ("x",), None)
    line = ProfessionalFormatter().format(record)
    assert line.endswith(" | WRN | brokertax.trading | hello x")
