"""
Alert matching and notification dispatch.

Re-exports:
    - AlertMatcher: evaluates active rules against classified articles
    - RedisNotificationQueue: pushes jobs for the external sender
    - build_notification_job: the job payload shape
"""
from .matcher import AlertMatcher, MatchResult, matches
from .payload import DEFAULT_JOB_OPTIONS, JOB_NAME, build_envelope, build_notification_job
from .queue import RedisNotificationQueue

__all__ = [
    "AlertMatcher",
    "DEFAULT_JOB_OPTIONS",
    "JOB_NAME",
    "MatchResult",
    "RedisNotificationQueue",
    "build_envelope",
    "build_notification_job",
    "matches",
]
