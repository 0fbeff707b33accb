"""Utility modules for expirefs.

This module exports commonly used utility functions.
"""

from expirefs.utils.formatting import (
    console,
    create_entries_table,
    err_console,
    format_age,
    format_size,
    print_error,
    print_info,
    print_success,
    print_warning,
)

__all__ = [
    "console",
    "create_entries_table",
    "err_console",
    "format_age",
    "format_size",
    "print_error",
    "print_info",
    "print_success",
    "print_warning",
]
