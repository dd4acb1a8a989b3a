# axiss_nav/models.py

import secrets

from sqlalchemy import (
    Column, Integer, String, DateTime, ForeignKey, Text, Boolean, Table, Index,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from axiss_nav.db import Base, now_utc

ROLE_USER = "USER"
ROLE_ADMIN = "ADMIN"

link_tags = Table(
    "link_tags",
    Base.metadata,
    Column("link_id", Integer, ForeignKey("links.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class User(Base):
    __tablename__ = "users"
    id = Column(Integer, primary_key=True)
    username = Column(String(64), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)
    role = Column(String(16), nullable=False, default=ROLE_USER)
    api_key = Column(String(128), unique=True, index=True, default=lambda: secrets.token_hex(32))
    created_at = Column(DateTime(timezone=True), default=now_utc)

    links = relationship("Link", back_populates="user", cascade="all, delete-orphan")
    tags = relationship("Tag", back_populates="user", cascade="all, delete-orphan")
    categories = relationship("Category", back_populates="user", cascade="all, delete-orphan")

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


class Category(Base):
    __tablename__ = "categories"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(64), nullable=False)
    description = Column(Text, default="")
    icon = Column(String(255), default="")
    color = Column(String(32), default="")
    order = Column(Integer, default=0)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    user = relationship("User", back_populates="categories")
    links = relationship("Link", back_populates="category")


class Tag(Base):
    __tablename__ = "tags"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    name = Column(String(64), nullable=False, index=True)
    color = Column(String(32), default="")
    icon = Column(String(32), default="")  # emoji
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=now_utc)

    user = relationship("User", back_populates="tags")
    links = relationship("Link", secondary=link_tags, back_populates="tags")

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_user_tag_name"),
    )


class Link(Base):
    __tablename__ = "links"
    id = Column(Integer, primary_key=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category_id = Column(Integer, ForeignKey("categories.id"), nullable=True, index=True)

    title = Column(Text, nullable=False)
    url = Column(Text, nullable=False)
    description = Column(Text, default="")
    icon = Column(Text, default="")
    color = Column(String(32), default="")
    order = Column(Integer, default=0)
    click_count = Column(Integer, default=0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    created_at = Column(DateTime(timezone=True), default=now_utc, index=True)
    updated_at = Column(DateTime(timezone=True), default=now_utc, onupdate=now_utc)

    user = relationship("User", back_populates="links")
    category = relationship("Category", back_populates="links")
    tags = relationship("Tag", secondary=link_tags, back_populates="links", order_by="Tag.id")

    # active-URL uniqueness is enforced in code so soft-deleted rows can be re-added
    __table_args__ = (
        Index("ix_links_user_url", "user_id", "url"),
    )
