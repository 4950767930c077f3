from .config import configure_logging, level_for_verbosity

__all__ = ["configure_logging", "level_for_verbosity"]
