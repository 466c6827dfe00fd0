"""
In-memory data context for the blog feature.

Each collection is an EntitySet, which also makes the entity discoverable by
context_source(BlogContext).
"""

import logging
import threading
from typing import Optional
from uuid import UUID

from ..core.discovery import EntitySet
from .entities import Author, BlogPost, Category, Comment

logger = logging.getLogger(__name__)


class BlogContext:
    """Holds blog entities; handlers take the lock around read-modify-write."""

    authors: EntitySet[Author]
    blog_posts: EntitySet[BlogPost]
    categories: EntitySet[Category]
    comments: EntitySet[Comment]

    def __init__(self):
        self.authors = EntitySet(Author)
        self.blog_posts = EntitySet(BlogPost)
        self.categories = EntitySet(Category)
        self.comments = EntitySet(Comment)
        self.lock = threading.RLock()

    def author_by_email(self, email: str) -> Optional[Author]:
        matches = self.authors.find(lambda a: a.email.lower() == email.lower())
        return matches[0] if matches else None

    def posts_by_author(self, author_id: UUID):
        return self.blog_posts.find(lambda p: p.author_id == author_id)

    @classmethod
    def seeded(cls) -> "BlogContext":
        """Context with a small demo data set."""
        context = cls()
        ada = context.authors.add(Author(first_name="Ada", last_name="Lovelace", email="ada@example.com",
                                         bio="Wrote the first program."))
        alan = context.authors.add(Author(first_name="Alan", last_name="Turing", email="alan@example.com"))
        tech = context.categories.add(Category(name="Technology", description="Computing and engines"))
        context.categories.add(Category(name="History"))
        context.blog_posts.add(BlogPost(title="Notes on the Analytical Engine",
                                        content="...", summary="Sketch of the engine",
                                        author_id=ada.id, category_id=tech.id))
        context.blog_posts.add(BlogPost(title="Computing Machinery", content="...",
                                        author_id=alan.id, category_id=tech.id))
        logger.debug(f"Seeded blog context: {len(context.authors)} authors, {len(context.blog_posts)} posts")
        return context
