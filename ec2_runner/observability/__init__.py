from .logger import BoundLogger, logger
from .logging import LogConfig, setup_logging, teardown_logging

__all__ = ["BoundLogger", "LogConfig", "logger", "setup_logging", "teardown_logging"]
