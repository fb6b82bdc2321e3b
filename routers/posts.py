# In routers/posts.py

import asyncio
import logging
from fastapi import APIRouter, HTTPException, Request, Depends, Response, status
from typing import List, Annotated

import GateAuth as gate
import settings
from domain.comments import (
    Comment, CommentCreate, CommentNode, CommentView,
    build_comment_tree, clamp_depth, iter_thread,
)
from domain.posts import Post, PostCreate, PostSummary, PostView
from domain.provenance import ContentKind, ProvenanceTracker, PROVENANCE_STORAGE_KEY
from domain.storage import SessionStorage
from services.forum_store import ForumStore

logger = logging.getLogger('uvicorn.error')

POST_NOT_FOUND = "المقال غير موجود"
COMMENT_NOT_FOUND = "التعليق غير موجود"
PARENT_NOT_FOUND = "التعليق الأصلي غير موجود"

router = APIRouter(
    prefix="/posts",
    tags=["posts", "comments"]
)


# --- Dependencies ---
async def get_forum_store(request: Request) -> ForumStore:
    if not hasattr(request.app.state, 'forum_store') or not request.app.state.forum_store:
        logger.error("Forum store not initialized or unavailable.")
        raise HTTPException(status_code=503, detail="خدمة قاعدة البيانات غير متاحة")
    return request.app.state.forum_store


async def get_provenance(request: Request) -> ProvenanceTracker:
    return ProvenanceTracker(
        SessionStorage(request.session, PROVENANCE_STORAGE_KEY),
        max_entries=settings.PROVENANCE_MAX_IDS,
    )


def check_text_size(*fields: str) -> None:
    if any(len(field.encode('utf-8')) > settings.MAX_TEXT_FIELD_SIZE_BYTES for field in fields):
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"يتجاوز النص الحد الأقصى المسموح به ({settings.MAX_TEXT_FIELD_SIZE_KB} كيلوبايت).",
        )


async def require_post(store: ForumStore, post_id: str) -> Post:
    try:
        post = await store.get_post(post_id)
    except Exception as e:
        logger.exception(f"Error retrieving post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="حدث خطأ أثناء تحميل المقال. يرجى تحديث الصفحة.")
    if post is None:
        logger.warning(f"Post document with ID {post_id} not found.")
        raise HTTPException(status_code=404, detail=POST_NOT_FOUND)
    return post


# --- Post API Routes ---
@router.get("/", response_model=List[PostSummary])
async def get_all_posts(
    store: Annotated[ForumStore, Depends(get_forum_store)],
    provenance: Annotated[ProvenanceTracker, Depends(get_provenance)],
):
    try:
        posts = await store.list_posts()
        counts = await asyncio.gather(*(store.count_comments(post.id) for post in posts))
        commented = await store.find_commented_posts(provenance.snapshot().comments)
    except Exception as e:
        logger.exception(f"Error retrieving posts: {e}")
        raise HTTPException(status_code=500, detail="حدث خطأ أثناء تحميل المنشورات. يرجى تحديث الصفحة.")
    return [
        PostSummary.from_post(
            post,
            comment_count=count,
            preview_length=settings.POST_PREVIEW_LENGTH,
            created_by_me=provenance.was_created_by_me(ContentKind.POST, post.id),
            commented_by_me=post.id in commented,
        )
        for post, count in zip(posts, counts)
    ]


@router.get("/{post_id}", response_model=PostView)
async def get_post_by_id(
    post_id: str,
    store: Annotated[ForumStore, Depends(get_forum_store)],
    provenance: Annotated[ProvenanceTracker, Depends(get_provenance)],
):
    post = await require_post(store, post_id)
    return PostView(**post.model_dump(), created_by_me=provenance.was_created_by_me(ContentKind.POST, post.id))


@router.post("/", response_model=PostView, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_in: PostCreate,
    store: Annotated[ForumStore, Depends(get_forum_store)],
    provenance: Annotated[ProvenanceTracker, Depends(get_provenance)],
    _gate: Annotated[dict, Depends(gate.require_gate_token)],
):
    check_text_size(post_in.title, post_in.content)
    new_post = Post(
        title=post_in.title,
        content=post_in.content,
        author_name=post_in.author_name,
        is_anonymous=post_in.is_anonymous,
        criticism_level=post_in.criticism_level,
    )
    try:
        await store.create_post(new_post)
    except Exception as e:
        logger.exception(f"Error creating post '{new_post.id}': {e}")
        raise HTTPException(status_code=500, detail="حدث خطأ أثناء نشر المقال. يرجى المحاولة مرة أخرى.")
    provenance.record_created(ContentKind.POST, new_post.id)
    logger.info(f"Created post '{new_post.id}' (criticism level {new_post.criticism_level.value})")
    return PostView(**new_post.model_dump(), created_by_me=True)


@router.delete(
    "/{post_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(gate.require_delete_password)],
)
async def delete_post(
    post_id: str,
    store: Annotated[ForumStore, Depends(get_forum_store)],
):
    try:
        deleted = await store.delete_post(post_id)
    except Exception as e:
        logger.exception(f"Error deleting post '{post_id}': {e}")
        raise HTTPException(status_code=500, detail="حدث خطأ أثناء حذف المقال. يرجى المحاولة مرة أخرى.")
    if not deleted:
        logger.warning(f"Attempt to delete non-existent post {post_id}")
        raise HTTPException(status_code=404, detail=POST_NOT_FOUND)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# --- Comment API Routes ---
async def load_comments(store: ForumStore, post_id: str) -> List[Comment]:
    await require_post(store, post_id)
    try:
        return await store.list_comments(post_id)
    except Exception as e:
        logger.exception(f"Error retrieving comments for post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="حدث خطأ أثناء تحميل التعليقات")


@router.get("/{post_id}/comments/", response_model=List[CommentView])
async def get_comments_for_post(
    post_id: str,
    store: Annotated[ForumStore, Depends(get_forum_store)],
    provenance: Annotated[ProvenanceTracker, Depends(get_provenance)],
):
    comments = await load_comments(store, post_id)
    return [
        CommentView(**comment.model_dump(), created_by_me=provenance.was_created_by_me(ContentKind.COMMENT, comment.id))
        for comment in comments
    ]


@router.get("/{post_id}/comments/tree", response_model=List[CommentNode])
async def get_comment_tree(
    post_id: str,
    store: Annotated[ForumStore, Depends(get_forum_store)],
    provenance: Annotated[ProvenanceTracker, Depends(get_provenance)],
):
    comments = await load_comments(store, post_id)
    roots = clamp_depth(build_comment_tree(comments), settings.MAX_THREAD_DEPTH)
    for node, _depth in iter_thread(roots):
        node.created_by_me = provenance.was_created_by_me(ContentKind.COMMENT, node.id)
    return roots


@router.post("/{post_id}/comments/", response_model=CommentView, status_code=status.HTTP_201_CREATED)
async def create_comment(
    post_id: str,
    comment_in: CommentCreate,
    store: Annotated[ForumStore, Depends(get_forum_store)],
    provenance: Annotated[ProvenanceTracker, Depends(get_provenance)],
    _gate: Annotated[dict, Depends(gate.require_gate_token)],
):
    await require_post(store, post_id)
    check_text_size(comment_in.content)

    if comment_in.parent_comment_id is not None:
        try:
            parent = await store.get_comment(post_id, comment_in.parent_comment_id)
        except Exception as e:
            logger.exception(f"Error retrieving parent comment {comment_in.parent_comment_id}: {e}")
            raise HTTPException(status_code=500, detail="حدث خطأ أثناء نشر التعليق. يرجى المحاولة مرة أخرى.")
        if parent is None:
            logger.warning(f"Reply to missing comment {comment_in.parent_comment_id} in post {post_id}")
            raise HTTPException(status_code=404, detail=PARENT_NOT_FOUND)

    new_comment = Comment(
        post_id=post_id,
        parent_comment_id=comment_in.parent_comment_id,
        content=comment_in.content,
        author_name=comment_in.author_name,
        is_anonymous=comment_in.is_anonymous,
    )
    try:
        await store.create_comment(new_comment)
    except Exception as e:
        logger.exception(f"Error creating comment for post '{post_id}': {e}")
        raise HTTPException(status_code=500, detail="حدث خطأ أثناء نشر التعليق. يرجى المحاولة مرة أخرى.")
    provenance.record_created(ContentKind.COMMENT, new_comment.id)
    logger.info(f"Created comment '{new_comment.id}' on post '{post_id}'")
    return CommentView(**new_comment.model_dump(), created_by_me=True)


@router.delete(
    "/{post_id}/comments/{comment_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(gate.require_delete_password)],
)
async def delete_comment(
    post_id: str,
    comment_id: str,
    store: Annotated[ForumStore, Depends(get_forum_store)],
):
    # Replies are kept; they show up as top-level comments once their parent is gone.
    try:
        deleted = await store.delete_comment(post_id, comment_id)
    except Exception as e:
        logger.exception(f"Error deleting comment {comment_id} of post {post_id}: {e}")
        raise HTTPException(status_code=500, detail="حدث خطأ أثناء حذف التعليق. يرجى المحاولة مرة أخرى.")
    if not deleted:
        logger.warning(f"Comment {comment_id} not found in post {post_id}")
        raise HTTPException(status_code=404, detail=COMMENT_NOT_FOUND)
    logger.info(f"Deleted comment '{comment_id}' from post '{post_id}'")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
