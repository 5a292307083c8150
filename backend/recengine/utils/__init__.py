"""Utility modules"""

from .logging import get_logger, setup_logging
from .store import create_redis_client, run_transaction

__all__ = ["get_logger", "setup_logging", "create_redis_client", "run_transaction"]
