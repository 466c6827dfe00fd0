"""Read models returned by blog handlers."""

from datetime import datetime
from typing import Optional
from uuid import UUID

from pydantic import BaseModel

from .entities import Author, BlogPost, Category, Comment


class AuthorView(BaseModel):
    id: UUID
    first_name: str
    last_name: str
    email: str
    bio: str
    full_name: str
    post_count: int = 0

    @classmethod
    def of(cls, author: Author, post_count: int = 0) -> "AuthorView":
        return cls(
            id=author.id,
            first_name=author.first_name,
            last_name=author.last_name,
            email=author.email,
            bio=author.bio,
            full_name=author.full_name,
            post_count=post_count,
        )


class CategoryView(BaseModel):
    id: UUID
    name: str
    description: str

    @classmethod
    def of(cls, category: Category) -> "CategoryView":
        return cls(id=category.id, name=category.name, description=category.description)


class BlogPostView(BaseModel):
    id: UUID
    title: str
    summary: str
    is_published: bool
    published_at: Optional[datetime] = None
    author_id: UUID
    author_name: str = ""
    category_id: UUID
    category_name: str = ""

    @classmethod
    def of(cls, post: BlogPost, author: Optional[Author] = None,
           category: Optional[Category] = None) -> "BlogPostView":
        return cls(
            id=post.id,
            title=post.title,
            summary=post.summary,
            is_published=post.is_published,
            published_at=post.published_at,
            author_id=post.author_id,
            author_name=author.full_name if author else "",
            category_id=post.category_id,
            category_name=category.name if category else "",
        )


class CommentView(BaseModel):
    id: UUID
    content: str
    author_name: str
    is_approved: bool
    blog_post_id: UUID

    @classmethod
    def of(cls, comment: Comment) -> "CommentView":
        return cls(
            id=comment.id,
            content=comment.content,
            author_name=comment.author_name,
            is_approved=comment.is_approved,
            blog_post_id=comment.blog_post_id,
        )
