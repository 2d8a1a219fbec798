"""
SQLAlchemy 2.0 database models.
"""
import uuid
import enum
from datetime import datetime

from sqlalchemy import (
    Column, String, DateTime, ForeignKey, Text, Boolean, Integer, JSON
)
from sqlalchemy.orm import relationship, declarative_base

Base = declarative_base()


def generate_id() -> str:
    return str(uuid.uuid4())


class ContentType(str, enum.Enum):
    article = "article"
    topic = "topic"
    reply = "reply"
    job = "job"

class ContentStatus(str, enum.Enum):
    pending = "pending"
    approved = "approved"
    rejected = "rejected"
    hidden = "hidden"
    deleted = "deleted"

class ReportStatus(str, enum.Enum):
    pending = "pending"
    reviewing = "reviewing"
    resolved_no_action = "resolved_no_action"
    resolved_violation = "resolved_violation"
    dismissed = "dismissed"

class UserRole(str, enum.Enum):
    admin = "admin"
    moderator = "moderator"
    user = "user"

OPEN_REPORT_STATUSES = (ReportStatus.pending.value, ReportStatus.reviewing.value)


class User(Base):
    __tablename__ = "users"
    id = Column(String(36), primary_key=True, default=generate_id)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    role = Column(String(20), default=UserRole.user.value, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

class Company(Base):
    __tablename__ = "companies"
    id = Column(String(36), primary_key=True, default=generate_id)
    name = Column(String(255), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    user = relationship("User")

class Article(Base):
    __tablename__ = "articles"
    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(Text, nullable=True)
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    status = Column(String(20), default=ContentStatus.pending.value, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    author = relationship("User")

class Topic(Base):
    __tablename__ = "topics"
    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(255), nullable=False)
    content = Column(Text, nullable=False)
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    is_deleted = Column(Boolean, default=False, nullable=False)
    spam_score = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    author = relationship("User")
    replies = relationship("Reply", back_populates="topic", passive_deletes=True)

class Reply(Base):
    __tablename__ = "replies"
    id = Column(String(36), primary_key=True, default=generate_id)
    topic_id = Column(String(36), ForeignKey("topics.id", ondelete="CASCADE"), nullable=False, index=True)
    content = Column(Text, nullable=False)
    author_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    is_deleted = Column(Boolean, default=False, nullable=False)
    spam_score = Column(Integer, default=0, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    author = relationship("User")
    topic = relationship("Topic", back_populates="replies")

class Job(Base):
    __tablename__ = "jobs"
    id = Column(String(36), primary_key=True, default=generate_id)
    title = Column(String(255), nullable=False)
    description = Column(Text, nullable=False)
    company_id = Column(String(36), ForeignKey("companies.id"), nullable=False, index=True)
    status = Column(String(20), default=ContentStatus.pending.value, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    company = relationship("Company")

class Report(Base):
    """User-submitted report against a piece of content."""
    __tablename__ = "reports"

    id = Column(String(36), primary_key=True, default=generate_id)
    reportable_type = Column(String(20), nullable=False, index=True)  # Article, Topic, Reply, Job
    reportable_id = Column(String(36), nullable=False, index=True)
    reason = Column(String(100), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(String(30), default=ReportStatus.pending.value, nullable=False, index=True)
    reporter_id = Column(String(36), ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    resolved_at = Column(DateTime, nullable=True)
    resolved_by = Column(String(36), nullable=True)

    reporter = relationship("User")

class ModerationLog(Base):
    """Append-only audit trail of moderation decisions."""
    __tablename__ = "moderation_logs"

    id = Column(String(36), primary_key=True, default=generate_id)
    # A user id, or "system" for automated decisions
    moderator_id = Column(String(36), nullable=False, index=True)
    action = Column(String(50), nullable=False, index=True)
    target_type = Column(String(20), nullable=False)
    target_id = Column(String(36), nullable=False, index=True)
    reason = Column(Text, nullable=True)
    meta_data = Column("metadata", JSON, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)

class SpamKeyword(Base):
    __tablename__ = "spam_keywords"

    id = Column(Integer, primary_key=True, autoincrement=True)
    keyword = Column(String(255), unique=True, nullable=False)
    severity = Column(Integer, default=1, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False, index=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)
