"""
SQLAlchemy ORM models for the content-automation schema.

Only ``User`` and ``OAuthConnection`` are exercised by the current services;
the topic → draft → approval → schedule → published post → analytics chain is
declared for the upcoming generation and publishing phases.

Column types use JSON / Uuid with PostgreSQL variants so the same metadata
runs on asyncpg in production and on SQLite in tests.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
)
from sqlalchemy.dialects.postgresql import ARRAY, JSONB
from sqlalchemy.orm import DeclarativeBase, relationship

JsonDoc = JSON().with_variant(JSONB(), "postgresql")
TextList = JSON().with_variant(ARRAY(Text), "postgresql")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Base(DeclarativeBase):
    pass


class User(Base):
    __tablename__ = "users"

    user_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    email = Column(String(255), unique=True, nullable=False)
    display_name = Column(String(255), nullable=False)
    password_hash = Column(Text, nullable=True)   # NULL for passwordless users
    preferences = Column(JsonDoc, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    connections = relationship("OAuthConnection", back_populates="user", cascade="all, delete-orphan")
    topics = relationship("Topic", back_populates="user", cascade="all, delete-orphan")
    drafts = relationship("Draft", back_populates="user", cascade="all, delete-orphan")


class OAuthConnection(Base):
    __tablename__ = "oauth_connections"
    __table_args__ = (
        UniqueConstraint("user_id", "provider", name="uq_oauth_connections_user_provider"),
    )

    connection_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    provider = Column(String(50), nullable=False)          # linkedin | google
    provider_user_id = Column(String(255), nullable=False)
    access_token = Column(Text, nullable=False)            # encrypted when a key is configured
    refresh_token = Column(Text, nullable=True)
    token_expires_at = Column(DateTime(timezone=True), nullable=True)
    scopes = Column(TextList, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user = relationship("User", back_populates="connections")


class Topic(Base):
    __tablename__ = "topics"

    topic_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    title = Column(String(500), nullable=False)
    description = Column(Text)
    source = Column(String(50), nullable=False)     # manual | trending | ai_suggested
    source_url = Column(Text)
    relevance_score = Column(Float, default=0.0)    # 0-1 scale
    status = Column(String(50), nullable=False, default="discovered")  # discovered | selected | drafted | archived
    metadata_ = Column("metadata", JsonDoc, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user = relationship("User", back_populates="topics")


class Draft(Base):
    __tablename__ = "drafts"

    draft_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    topic_id = Column(Uuid(as_uuid=True), ForeignKey("topics.topic_id", ondelete="SET NULL"), nullable=True)
    content = Column(Text, nullable=False)
    generation_metadata = Column(JsonDoc)   # model, prompt_version, request_id, temperature
    compliance_checks = Column(JsonDoc)     # passed, flags, suggestions, checked_at
    version = Column(Integer, nullable=False, default=1)
    status = Column(String(32), nullable=False, default="draft")  # draft | pending_approval | approved | rejected | published
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    user = relationship("User", back_populates="drafts")
    approvals = relationship("Approval", back_populates="draft", cascade="all, delete-orphan")


class Approval(Base):
    __tablename__ = "approvals"

    approval_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    draft_id = Column(Uuid(as_uuid=True), ForeignKey("drafts.draft_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    action = Column(String(32), nullable=False)   # approved | rejected | requested_changes
    feedback = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    draft = relationship("Draft", back_populates="approvals")


class Schedule(Base):
    __tablename__ = "schedules"

    schedule_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    draft_id = Column(Uuid(as_uuid=True), ForeignKey("drafts.draft_id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    scheduled_for = Column(DateTime(timezone=True), nullable=False)
    timezone = Column(String(64), nullable=False, default="UTC")
    status = Column(String(32), nullable=False, default="pending")  # pending | processing | published | failed | cancelled
    job_id = Column(String(128))
    retry_count = Column(Integer, nullable=False, default=0)
    published_at = Column(DateTime(timezone=True))
    error_message = Column(Text)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    updated_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)


class PublishedPost(Base):
    __tablename__ = "published_posts"

    post_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    draft_id = Column(Uuid(as_uuid=True), ForeignKey("drafts.draft_id", ondelete="CASCADE"), nullable=False)
    schedule_id = Column(Uuid(as_uuid=True), ForeignKey("schedules.schedule_id", ondelete="SET NULL"), nullable=True)
    user_id = Column(Uuid(as_uuid=True), ForeignKey("users.user_id", ondelete="CASCADE"), nullable=False)
    provider = Column(String(50), nullable=False)        # linkedin
    provider_post_id = Column(Text, nullable=False)      # LinkedIn URN
    post_url = Column(Text, nullable=False)
    published_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    analytics = relationship("Analytics", back_populates="post", cascade="all, delete-orphan")


class Analytics(Base):
    __tablename__ = "analytics"

    analytics_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    post_id = Column(Uuid(as_uuid=True), ForeignKey("published_posts.post_id", ondelete="CASCADE"), nullable=False)
    collected_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)
    metrics = Column(JsonDoc, nullable=False, default=dict)   # views, likes, comments, shares, engagement_rate
    created_at = Column(DateTime(timezone=True), nullable=False, default=_utcnow)

    post = relationship("PublishedPost", back_populates="analytics")
