"""Handlers for blog operations, backed by a BlogContext."""

import logging
from datetime import datetime, timezone
from typing import List

from ..mediator import InMemoryMediator
from .context import BlogContext
from .entities import Author, BlogPost, Category, Comment
from .operations import (
    ApproveCommentCommand,
    CreateAuthorCommand,
    CreateBlogPostCommand,
    CreateCategoryCommand,
    CreateCommentCommand,
    DeleteAuthorCommand,
    GetAllAuthorsQuery,
    GetAllCategoriesQuery,
    GetAuthorByEmailQuery,
    GetAuthorByIdQuery,
    GetBlogPostsByAuthorQuery,
    GetBlogPostsByCategoryQuery,
    GetCommentsByBlogPostQuery,
    GetPublishedBlogPostsQuery,
    PublishBlogPostCommand,
    UpdateAuthorCommand,
)
from .views import AuthorView, BlogPostView, CategoryView, CommentView

logger = logging.getLogger(__name__)


class BlogHandlers:
    """One method per operation; register() wires them into a mediator."""

    def __init__(self, context: BlogContext):
        self.context = context

    def register(self, mediator: InMemoryMediator) -> None:
        handlers = {
            GetAllAuthorsQuery: self.get_all_authors,
            GetAuthorByIdQuery: self.get_author_by_id,
            GetAuthorByEmailQuery: self.get_author_by_email,
            CreateAuthorCommand: self.create_author,
            UpdateAuthorCommand: self.update_author,
            DeleteAuthorCommand: self.delete_author,
            CreateBlogPostCommand: self.create_blog_post,
            PublishBlogPostCommand: self.publish_blog_post,
            GetBlogPostsByAuthorQuery: self.get_blog_posts_by_author,
            GetBlogPostsByCategoryQuery: self.get_blog_posts_by_category,
            GetPublishedBlogPostsQuery: self.get_published_blog_posts,
            GetAllCategoriesQuery: self.get_all_categories,
            CreateCategoryCommand: self.create_category,
            CreateCommentCommand: self.create_comment,
            ApproveCommentCommand: self.approve_comment,
            GetCommentsByBlogPostQuery: self.get_comments_by_blog_post,
        }
        for request_type, handler in handlers.items():
            mediator.register(request_type, handler)

    # ========================================================================
    # Authors
    # ========================================================================

    async def get_all_authors(self, query: GetAllAuthorsQuery) -> List[AuthorView]:
        return [self._author_view(a) for a in self.context.authors]

    async def get_author_by_id(self, query: GetAuthorByIdQuery) -> AuthorView:
        return self._author_view(self._author(query.id))

    async def get_author_by_email(self, query: GetAuthorByEmailQuery) -> AuthorView:
        author = self.context.author_by_email(query.email)
        if author is None:
            raise LookupError(f"No author with email '{query.email}'")
        return self._author_view(author)

    async def create_author(self, command: CreateAuthorCommand) -> AuthorView:
        with self.context.lock:
            if self.context.author_by_email(command.email) is not None:
                raise ValueError(f"An author with email '{command.email}' already exists")
            author = self.context.authors.add(Author(
                first_name=command.first_name,
                last_name=command.last_name,
                email=command.email,
                bio=command.bio,
            ))
        logger.info(f"Created author {author.id}")
        return self._author_view(author)

    async def update_author(self, command: UpdateAuthorCommand) -> AuthorView:
        with self.context.lock:
            author = self._author(command.id)
            author.first_name = command.first_name
            author.last_name = command.last_name
            if command.bio is not None:
                author.bio = command.bio
            author.touch()
        return self._author_view(author)

    async def delete_author(self, command: DeleteAuthorCommand) -> bool:
        with self.context.lock:
            self._author(command.id)
            return self.context.authors.remove(command.id)

    # ========================================================================
    # Blog posts
    # ========================================================================

    async def create_blog_post(self, command: CreateBlogPostCommand) -> BlogPostView:
        with self.context.lock:
            author = self._author(command.author_id)
            category = self._category(command.category_id)
            post = self.context.blog_posts.add(BlogPost(
                title=command.title,
                content=command.content,
                summary=command.summary or "",
                author_id=author.id,
                category_id=category.id,
            ))
        return BlogPostView.of(post, author, category)

    async def publish_blog_post(self, command: PublishBlogPostCommand) -> BlogPostView:
        with self.context.lock:
            post = self.context.blog_posts.get(command.id)
            if post is None:
                raise LookupError(f"Blog post {command.id} not found")
            post.is_published = True
            post.published_at = datetime.now(timezone.utc)
            post.touch()
        return self._post_view(post)

    async def get_blog_posts_by_author(self, query: GetBlogPostsByAuthorQuery) -> List[BlogPostView]:
        return [self._post_view(p) for p in self.context.posts_by_author(query.author_id)]

    async def get_blog_posts_by_category(self, query: GetBlogPostsByCategoryQuery) -> List[BlogPostView]:
        posts = self.context.blog_posts.find(lambda p: p.category_id == query.category_id)
        return [self._post_view(p) for p in posts]

    async def get_published_blog_posts(self, query: GetPublishedBlogPostsQuery) -> List[BlogPostView]:
        return [self._post_view(p) for p in self.context.blog_posts.find(lambda p: p.is_published)]

    # ========================================================================
    # Categories
    # ========================================================================

    def get_all_categories(self, query: GetAllCategoriesQuery) -> List[CategoryView]:
        return [CategoryView.of(c) for c in self.context.categories]

    def create_category(self, command: CreateCategoryCommand) -> CategoryView:
        category = self.context.categories.add(Category(name=command.name, description=command.description))
        return CategoryView.of(category)

    # ========================================================================
    # Comments
    # ========================================================================

    async def create_comment(self, command: CreateCommentCommand) -> CommentView:
        with self.context.lock:
            if self.context.blog_posts.get(command.blog_post_id) is None:
                raise LookupError(f"Blog post {command.blog_post_id} not found")
            comment = self.context.comments.add(Comment(
                content=command.content,
                author_name=command.author_name,
                author_email=command.author_email,
                blog_post_id=command.blog_post_id,
            ))
        return CommentView.of(comment)

    async def approve_comment(self, command: ApproveCommentCommand) -> CommentView:
        with self.context.lock:
            comment = self.context.comments.get(command.id)
            if comment is None:
                raise LookupError(f"Comment {command.id} not found")
            comment.is_approved = True
            comment.touch()
        return CommentView.of(comment)

    async def get_comments_by_blog_post(self, query: GetCommentsByBlogPostQuery) -> List[CommentView]:
        comments = self.context.comments.find(lambda c: c.blog_post_id == query.blog_post_id)
        return [CommentView.of(c) for c in comments]

    # ========================================================================
    # Helpers
    # ========================================================================

    def _author(self, author_id) -> Author:
        author = self.context.authors.get(author_id)
        if author is None:
            raise LookupError(f"Author {author_id} not found")
        return author

    def _category(self, category_id) -> Category:
        category = self.context.categories.get(category_id)
        if category is None:
            raise LookupError(f"Category {category_id} not found")
        return category

    def _author_view(self, author: Author) -> AuthorView:
        return AuthorView.of(author, post_count=len(self.context.posts_by_author(author.id)))

    def _post_view(self, post: BlogPost) -> BlogPostView:
        return BlogPostView.of(
            post,
            self.context.authors.get(post.author_id),
            self.context.categories.get(post.category_id),
        )
