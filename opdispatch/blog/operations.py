"""
Blog operations.

Every @invocable class here is picked up once this module is added to an
OperationRegistry. Class names follow {Verb}{Entity}{Query|Command}; where
the name alone would split wrongly ("GetAuthorByEmail" ends in "Email"), the
entity and verb are declared on the marker.

Frozen shapes are value objects: route parameters override payload values
when they are bound.
"""

from typing import Any, Dict, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from ..registry.operation_registry import invocable
from .views import AuthorView, BlogPostView, CategoryView, CommentView


class Operation(BaseModel):
    """Accepts camelCase and snake_case keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ValueOperation(Operation):
    model_config = ConfigDict(frozen=True)


# ============================================================================
# Authors
# ============================================================================

@invocable(output=AuthorView)
class GetAllAuthorsQuery(Operation):
    pass


@invocable(output=AuthorView, entity="Author", verb="GetById")
class GetAuthorByIdQuery(ValueOperation):
    id: UUID


@invocable(output=AuthorView, entity="Author", verb="GetByEmail")
class GetAuthorByEmailQuery(ValueOperation):
    email: str


@invocable(output=AuthorView)
class CreateAuthorCommand(Operation):
    first_name: str
    last_name: str
    email: str
    bio: str = ""


@invocable(output=AuthorView)
class UpdateAuthorCommand(ValueOperation):
    id: UUID
    first_name: str
    last_name: str
    bio: Optional[str] = None


@invocable(description="Deletes an author and keeps their posts")
class DeleteAuthorCommand(ValueOperation):
    id: UUID


# ============================================================================
# Blog posts
# ============================================================================

@invocable(output=BlogPostView)
class CreateBlogPostCommand(ValueOperation):
    title: str
    content: str
    summary: Optional[str] = None
    author_id: UUID
    category_id: UUID


@invocable(output=BlogPostView)
class PublishBlogPostCommand(ValueOperation):
    id: UUID


@invocable(output=BlogPostView, entity="BlogPost", verb="GetByAuthor")
class GetBlogPostsByAuthorQuery(ValueOperation):
    author_id: UUID


@invocable(output=BlogPostView, entity="BlogPost", verb="GetByCategory")
class GetBlogPostsByCategoryQuery(ValueOperation):
    category_id: UUID


@invocable(output=BlogPostView, short_description="Published posts")
class GetPublishedBlogPostsQuery(Operation):
    pass


# ============================================================================
# Categories
# ============================================================================

@invocable(output=CategoryView)
class GetAllCategoriesQuery(Operation):
    pass


@invocable(output=CategoryView)
class CreateCategoryCommand(Operation):
    name: str
    description: str = ""


# ============================================================================
# Comments
# ============================================================================

def build_create_comment(payload: Optional[Dict[str, Any]], route: Dict[str, Any]) -> "CreateCommentCommand":
    """The post id may come from the route as "postId" or from the payload."""
    values = dict(payload or {})
    post_id = route.get("postId") or route.get("blogPostId")
    if post_id is not None:
        values["blogPostId"] = post_id
    return CreateCommentCommand.model_validate(values)


@invocable(output=CommentView, builder=build_create_comment)
class CreateCommentCommand(ValueOperation):
    blog_post_id: UUID
    author_name: str
    author_email: str
    content: str


@invocable(output=CommentView)
class ApproveCommentCommand(ValueOperation):
    id: UUID


@invocable(output=CommentView, entity="Comment", verb="GetByBlogPost")
class GetCommentsByBlogPostQuery(ValueOperation):
    blog_post_id: UUID
