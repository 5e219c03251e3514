"""Provider-agnostic client for Git hosting platforms."""

# Initialize logging when package is imported
from .utils.logger import LoggerSetup

# Ensure logging is set up
LoggerSetup.setup_logging()

__version__ = "0.1.0"
