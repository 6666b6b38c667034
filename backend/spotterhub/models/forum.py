"""
Forum models for community discussions.

Includes:
- Categories (sections)
- Posts (threads)
- Comments (threaded replies)

Posts and comments are soft-deleted: the row stays so moderation
log entries keep pointing at a valid id.
"""

from datetime import datetime
from uuid import uuid4

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from spotterhub.core.database import Base


def generate_id() -> str:
    return uuid4().hex


class ForumCategory(Base):
    """Forum category/section."""

    __tablename__ = "forum_categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    name: Mapped[str] = mapped_column(String(100))
    slug: Mapped[str] = mapped_column(String(100), unique=True, index=True)
    description: Mapped[str | None] = mapped_column(Text)
    icon: Mapped[str | None] = mapped_column(String(50))  # Icon class name
    color: Mapped[str | None] = mapped_column(String(20))  # Hex color
    sort_order: Mapped[int] = mapped_column(Integer, default=0)
    is_active: Mapped[bool] = mapped_column(Boolean, default=True)

    # Relationships
    posts: Mapped[list["ForumPost"]] = relationship(back_populates="category")

    def __repr__(self) -> str:
        return f"<ForumCategory {self.name}>"


class ForumPost(Base):
    """Forum post/thread."""

    __tablename__ = "forum_posts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    category_id: Mapped[str | None] = mapped_column(
        ForeignKey("forum_categories.id"), index=True
    )

    # Author as known to the identity provider
    author_id: Mapped[str] = mapped_column(String(128), index=True)
    author_name: Mapped[str] = mapped_column(String(100))

    title: Mapped[str] = mapped_column(String(255))
    content: Mapped[str] = mapped_column(Text)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)

    # Lifecycle
    is_pinned: Mapped[bool] = mapped_column(Boolean, default=False)
    is_locked: Mapped[bool] = mapped_column(Boolean, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Stats
    views: Mapped[int] = mapped_column(Integer, default=0)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )
    last_activity: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)

    # Relationships
    category: Mapped["ForumCategory | None"] = relationship(back_populates="posts")
    comments: Mapped[list["ForumComment"]] = relationship(back_populates="post")

    def __repr__(self) -> str:
        return f"<ForumPost {self.title[:30]}>"


class ForumComment(Base):
    """Comment on a post, optionally replying to another comment."""

    __tablename__ = "forum_comments"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=generate_id)
    post_id: Mapped[str] = mapped_column(ForeignKey("forum_posts.id"), index=True)
    parent_id: Mapped[str | None] = mapped_column(ForeignKey("forum_comments.id"))

    author_id: Mapped[str] = mapped_column(String(128), index=True)
    author_name: Mapped[str] = mapped_column(String(100))

    content: Mapped[str] = mapped_column(Text)

    # Status
    is_edited: Mapped[bool] = mapped_column(Boolean, default=False)
    edited_at: Mapped[datetime | None] = mapped_column(DateTime)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    # Relationships
    post: Mapped["ForumPost"] = relationship(back_populates="comments")
    parent: Mapped["ForumComment | None"] = relationship(
        "ForumComment", remote_side=[id], back_populates="replies"
    )
    replies: Mapped[list["ForumComment"]] = relationship(
        "ForumComment", back_populates="parent"
    )

    def __repr__(self) -> str:
        return f"<ForumComment {self.id} on post {self.post_id}>"
