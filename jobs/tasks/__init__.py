"""
Background tasks.

Dramatiq task definitions.
"""

from jobs.tasks.cleanup import cleanup_expired_otps
from jobs.tasks.notification_retry import process_notification_retries

__all__ = [
    "cleanup_expired_otps",
    "process_notification_retries",
]
