"""
Forum Module - Community discussions.

Features:
- Categories and posts
- Threaded comments
- Role-based capability resolution
"""

from spotterhub.modules.forum.permissions import CapabilitySet, Role, resolve_capabilities
from spotterhub.modules.forum.service import ForumService

__all__ = [
    "CapabilitySet",
    "ForumService",
    "Role",
    "resolve_capabilities",
]
