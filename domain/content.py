import datetime
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

CONTENT_REQUIRED = "المحتوى مطلوب"
AUTHOR_NAME_REQUIRED = "اسم الكاتب مطلوب"


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def truncate_text(text: str, max_length: int) -> str:
    return f"{text[:max_length]}..." if len(text) > max_length else text


def require_text(value: str, message: str) -> str:
    if not value or not value.strip():
        raise ValueError(message)
    return value


class AuthoredInput(BaseModel):
    """Fields shared by new posts and new comments."""
    content: str
    author_name: Optional[str] = None
    is_anonymous: bool = True

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, v: str) -> str:
        return require_text(v, CONTENT_REQUIRED)

    @model_validator(mode="after")
    def author_matches_anonymity(self):
        if self.is_anonymous:
            self.author_name = None
        else:
            self.author_name = require_text(self.author_name or "", AUTHOR_NAME_REQUIRED).strip()
        return self
