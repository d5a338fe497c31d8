"""Item pattern expansion and content filters shared by the copy tasks."""

from .copying import copy_items, select_items
from .filters import apply_filters, filter_file, should_process_file, validate_filter_config
from .patterns import expand_patterns, list_files, validate_patterns

__all__ = [
    "apply_filters",
    "copy_items",
    "expand_patterns",
    "filter_file",
    "list_files",
    "select_items",
    "should_process_file",
    "validate_filter_config",
    "validate_patterns",
]
