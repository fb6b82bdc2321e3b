import logging
from typing import Annotated, List

from fastapi import APIRouter, Depends, HTTPException

import settings
from domain.comments import LatestComment
from domain.content import truncate_text
from domain.posts import PostRef
from routers.posts import get_forum_store
from services.forum_store import ForumStore

logger = logging.getLogger('uvicorn.error')

router = APIRouter(
    prefix="/comments",
    tags=["comments"],
)


@router.get("/latest", response_model=List[LatestComment])
async def get_latest_comments(store: Annotated[ForumStore, Depends(get_forum_store)]):
    try:
        latest = await store.latest_comments(settings.LATEST_COMMENTS_LIMIT)
    except Exception as e:
        logger.exception(f"Error fetching latest comments: {e}")
        raise HTTPException(status_code=500, detail="حدث خطأ أثناء تحميل التعليقات الأخيرة")
    return [
        LatestComment(
            id=comment.id,
            content=truncate_text(comment.content, settings.COMMENT_PREVIEW_LENGTH),
            author_name=comment.author_name,
            is_anonymous=comment.is_anonymous,
            created_at=comment.created_at,
            post=PostRef(id=post.id, title=post.title),
        )
        for comment, post in latest
    ]
