"""
Board Models
Posts, comments and likes
"""

from sqlalchemy import Boolean, CheckConstraint, Column, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.dialects.postgresql import JSONB, UUID
import enum

from youthhub.models.base import BaseModel, SoftDeleteModel


class PostCategory(str, enum.Enum):
    NOTICE = "notice"
    FREE = "free"
    QNA = "qna"


class Post(SoftDeleteModel):
    __tablename__ = "posts"

    title = Column(String(100), nullable=False)
    content = Column(Text, nullable=False)
    category = Column(String(20), nullable=False, default=PostCategory.FREE.value, index=True)

    author_id = Column(UUID(as_uuid=True), ForeignKey("user_profiles.id"), nullable=False, index=True)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    attachments = Column(JSONB, nullable=False, default=list, server_default="[]")

    # Denormalized counters
    view_count = Column(Integer, nullable=False, default=0)
    like_count = Column(Integer, nullable=False, default=0)
    comment_count = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        Index("ix_posts_category_created", "category", "created_at"),
    )

    def __repr__(self):
        return f"<Post(title='{self.title}', category='{self.category}')>"


class Comment(SoftDeleteModel):
    __tablename__ = "comments"

    post_id = Column(UUID(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=False, index=True)
    author_id = Column(UUID(as_uuid=True), ForeignKey("user_profiles.id"), nullable=False, index=True)
    parent_id = Column(UUID(as_uuid=True), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True)

    content = Column(Text, nullable=False)
    is_anonymous = Column(Boolean, nullable=False, default=False)
    like_count = Column(Integer, nullable=False, default=0)


class Like(BaseModel):
    """A like targets exactly one of a post or a comment"""
    __tablename__ = "likes"

    user_id = Column(UUID(as_uuid=True), ForeignKey("user_profiles.id"), nullable=False, index=True)
    post_id = Column(UUID(as_uuid=True), ForeignKey("posts.id", ondelete="CASCADE"), nullable=True, index=True)
    comment_id = Column(UUID(as_uuid=True), ForeignKey("comments.id", ondelete="CASCADE"), nullable=True, index=True)

    __table_args__ = (
        UniqueConstraint("user_id", "post_id", name="uq_likes_user_post"),
        UniqueConstraint("user_id", "comment_id", name="uq_likes_user_comment"),
        CheckConstraint("(post_id IS NULL) <> (comment_id IS NULL)", name="ck_likes_single_target"),
    )
