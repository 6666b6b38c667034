"""
Moderation Module - Forum content moderation.

Features:
- Pin, lock, delete, edit and move posts
- Append-only moderation action log
- User report queue
- Moderation stats
"""

from spotterhub.modules.moderation.audit import ModerationLog
from spotterhub.modules.moderation.reports import ReportQueue
from spotterhub.modules.moderation.service import ModerationService

__all__ = [
    "ModerationLog",
    "ModerationService",
    "ReportQueue",
]
