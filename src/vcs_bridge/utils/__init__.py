"""Utility modules for vcs-bridge."""

from .logger import get_logger, log_function_call, log_exception, LoggerSetup
from .tokens import create_token

__all__ = [
    "get_logger",
    "log_function_call",
    "log_exception",
    "LoggerSetup",
    "create_token",
]
