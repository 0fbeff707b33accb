"""expirefs - Retention policies for a watched directory tree.

Deletes files older than a configured lifetime and evicts the oldest
files when storage usage crosses a pressure threshold.
"""

__version__ = "0.3.0"
