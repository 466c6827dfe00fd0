"""Blog domain entities."""

from datetime import datetime, timezone
from typing import Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BaseEntity(BaseModel):
    """Identity plus audit timestamps shared by every entity."""
    id: UUID = Field(default_factory=uuid4)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    def touch(self) -> None:
        self.updated_at = utcnow()


class Author(BaseEntity):
    first_name: str
    last_name: str
    email: str
    bio: str = ""

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()


class Category(BaseEntity):
    name: str
    description: str = ""


class BlogPost(BaseEntity):
    title: str
    content: str
    summary: str = ""
    is_published: bool = False
    published_at: Optional[datetime] = None
    author_id: UUID
    category_id: UUID


class Comment(BaseEntity):
    content: str
    author_name: str
    author_email: str
    is_approved: bool = False
    blog_post_id: UUID
