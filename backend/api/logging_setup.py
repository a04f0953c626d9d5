"""
Logging configuration: colored console output, plain-text log file.
"""

import logging
import re

from api.config import settings


# Custom formatter to strip ANSI color codes from file logs
class ColorStripFormatter(logging.Formatter):
    """Formatter that strips ANSI color codes from log messages."""
    ansi_escape = re.compile(r'\x1B(?:[@-Z\\-_]|\[[0-?]*[ -/]*[@-~])')

    def format(self, record):
        message = super().format(record)
        return self.ansi_escape.sub('', message)


# Filter to suppress noisy polling endpoint access logs
class PollingEndpointFilter(logging.Filter):
    # Endpoints that poll frequently and clutter logs
    SUPPRESSED_ENDPOINTS = ['/api/crawl/result', '/api/crawl/status']

    def filter(self, record):
        msg = record.getMessage()
        return not any(endpoint in msg for endpoint in self.SUPPRESSED_ENDPOINTS)


def configure_logging():
    """Console handler with colors, file handler stripped of them."""
    settings.log_dir.mkdir(parents=True, exist_ok=True)

    file_handler = logging.FileHandler(settings.log_file, encoding='utf-8')
    file_handler.setFormatter(ColorStripFormatter(settings.log_format))

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(logging.Formatter(settings.log_format))

    logging.basicConfig(
        level=getattr(logging, settings.log_level.upper()),
        handlers=[file_handler, console_handler],
        force=True  # Override any existing configuration
    )

    # One line per embedding request is too chatty at INFO
    logging.getLogger('httpx').setLevel(logging.WARNING)

    logging.getLogger("uvicorn.access").addFilter(PollingEndpointFilter())
