"""
Scheduler package for the daily schedule check.

This package contains:
- Daily run service and scheduling
- Schedule and timecard change detection
- Timecard vs schedule discrepancy checks
- Alert assembly and delivery
"""

__version__ = "1.0.0"
