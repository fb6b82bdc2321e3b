import datetime
import enum
import uuid
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from domain.content import AuthoredInput, require_text, truncate_text, utc_now

TITLE_REQUIRED = "العنوان مطلوب"


class CriticismLevel(str, enum.Enum):
    LIGHT = "light"
    MODERATE = "moderate"
    HARSH = "harsh"


class PostCreate(AuthoredInput):
    title: str
    criticism_level: CriticismLevel = CriticismLevel.MODERATE

    @field_validator("title")
    @classmethod
    def title_not_blank(cls, v: str) -> str:
        return require_text(v, TITLE_REQUIRED)


class Post(BaseModel):
    id: str = Field(default_factory=lambda: f"post-{uuid.uuid4().hex}")
    title: str
    content: str
    author_name: Optional[str] = None
    is_anonymous: bool = True
    criticism_level: CriticismLevel = CriticismLevel.MODERATE
    created_at: datetime.datetime = Field(default_factory=utc_now)

    class Config:
        from_attributes = True


class PostView(Post):
    created_by_me: bool = False


class PostSummary(BaseModel):
    id: str
    title: str
    preview: str
    author_name: Optional[str] = None
    is_anonymous: bool
    criticism_level: CriticismLevel
    created_at: datetime.datetime
    comment_count: int = 0
    created_by_me: bool = False
    commented_by_me: bool = False

    @classmethod
    def from_post(
        cls,
        post: Post,
        comment_count: int,
        preview_length: int,
        created_by_me: bool = False,
        commented_by_me: bool = False,
    ):
        return cls(
            id=post.id,
            title=post.title,
            preview=truncate_text(post.content, preview_length),
            author_name=post.author_name,
            is_anonymous=post.is_anonymous,
            criticism_level=post.criticism_level,
            created_at=post.created_at,
            comment_count=comment_count,
            created_by_me=created_by_me,
            commented_by_me=commented_by_me,
        )


class PostRef(BaseModel):
    id: str
    title: str
