"""
Utilities package
Logging, formatting helpers, input validation and terminal polling
"""

from .logger import (
    get_logger,
    configure_from_settings,
    setup_logging,
    get_current_log_file
)
from .helpers import (
    atomic_write_json,
    format_duration,
    format_ms,
    truncate_string,
    progress_bar
)

__all__ = [
    # Logger exports
    'get_logger',
    'configure_from_settings',
    'setup_logging',
    'get_current_log_file',

    # Helper exports
    'atomic_write_json',
    'format_duration',
    'format_ms',
    'truncate_string',
    'progress_bar'
]
