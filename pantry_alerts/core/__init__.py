"""
Core utilities: the fail-soft policy for non-critical alert operations.
"""

from pantry_alerts.core.error_handling import fail_soft, is_fail_soft

__all__ = ["fail_soft", "is_fail_soft"]
