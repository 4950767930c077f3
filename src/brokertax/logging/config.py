import logging

_VERBOSITY_LEVELS = {
    0: logging.WARNING,  # Default: quiet
    1: logging.INFO,  # -v: informational
    2: logging.DEBUG,  # -vv and above: debug
}


class ProfessionalFormatter(logging.Formatter):
    def __init__(self):
        super().__init__(
            fmt="%(asctime)s | %(shortlevel)-3s | %(name)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        self.shortmap = {
            "DEBUG": "DBG",
            "INFO": "INF",
            "WARNING": "WRN",
            "ERROR": "ERR",
            "CRITICAL": "CRT",
        }

    def format(self, record) -> str:
        record.shortlevel = self.shortmap.get(record.levelname, "???")
        return super().format(record)


def level_for_verbosity(verbose: int) -> int:
    """Map the number of -v flags to a logging level."""
    return _VERBOSITY_LEVELS[min(max(verbose, 0), 2)]


def configure_logging(level=logging.WARNING) -> logging.Logger:
    """Install a single stderr handler on the root logger and return it.

    Calling it again only adjusts the level, so repeated CLI invocations in one
    process (tests) don't duplicate output.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    if not root_logger.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(ProfessionalFormatter())
        root_logger.addHandler(handler)
    return root_logger
