import enum
import logging
from typing import Dict, Iterable, List, Optional, Set, Tuple

from google.cloud import firestore
from google.cloud.firestore import AsyncClient
from pydantic import BaseModel, ValidationError

from domain.comments import Comment
from domain.posts import Post

logger = logging.getLogger('uvicorn.error')

POSTS_COLLECTION = "posts"
COMMENTS_SUBCOLLECTION = "comments"
MAX_BATCH_WRITES = 500


def _to_document(model: BaseModel) -> dict:
    # The document ID is the key, not a field.
    data = model.model_dump(exclude={"id"})
    return {key: value.value if isinstance(value, enum.Enum) else value for key, value in data.items()}


class ForumStore:
    """Posts live in `posts`, comments in each post's `comments` subcollection."""

    def __init__(self, db: AsyncClient):
        self.db = db

    def _post_ref(self, post_id: str):
        return self.db.collection(POSTS_COLLECTION).document(post_id)

    def _comments(self, post_id: str):
        return self._post_ref(post_id).collection(COMMENTS_SUBCOLLECTION)

    async def list_posts(self) -> List[Post]:
        posts = []
        query = self.db.collection(POSTS_COLLECTION).order_by("created_at", direction=firestore.Query.DESCENDING)
        async for doc in query.stream():
            post_data = doc.to_dict()
            post_data['id'] = doc.id
            try:
                posts.append(Post(**post_data))
            except ValidationError as validation_error:
                logger.error(f"Data validation error for post doc {doc.id}: {validation_error}. Data: {post_data}")
        return posts

    async def get_post(self, post_id: str) -> Optional[Post]:
        post_doc = await self._post_ref(post_id).get()
        if not post_doc.exists:
            return None
        post_data = post_doc.to_dict()
        post_data['id'] = post_doc.id
        return Post(**post_data)

    async def create_post(self, post: Post) -> Post:
        await self._post_ref(post.id).set(_to_document(post))
        return post

    async def delete_post(self, post_id: str) -> bool:
        post_ref = self._post_ref(post_id)
        post_doc = await post_ref.get()
        if not post_doc.exists:
            return False
        deleted = 0
        batch = self.db.batch()
        pending = 0
        async for doc in self._comments(post_id).stream():
            batch.delete(doc.reference)
            pending += 1
            if pending == MAX_BATCH_WRITES:
                await batch.commit()
                deleted += pending
                batch = self.db.batch()
                pending = 0
        if pending:
            await batch.commit()
            deleted += pending
        await post_ref.delete()
        logger.info(f"Deleted post '{post_id}' and {deleted} comments.")
        return True

    async def count_comments(self, post_id: str) -> int:
        results = await self._comments(post_id).count(alias="all").get()
        return int(results[0][0].value)

    async def list_comments(self, post_id: str) -> List[Comment]:
        comments = []
        query = self._comments(post_id).order_by("created_at", direction=firestore.Query.ASCENDING)
        async for doc in query.stream():
            comment_data = doc.to_dict()
            comment_data['id'] = doc.id
            try:
                comments.append(Comment(**comment_data))
            except ValidationError as validation_error:
                logger.error(f"Data validation error for comment {doc.id} in post {post_id}: {validation_error}. Data: {comment_data}")
        return comments

    async def get_comment(self, post_id: str, comment_id: str) -> Optional[Comment]:
        comment_doc = await self._comments(post_id).document(comment_id).get()
        if not comment_doc.exists:
            return None
        comment_data = comment_doc.to_dict()
        comment_data['id'] = comment_doc.id
        return Comment(**comment_data)

    async def create_comment(self, comment: Comment) -> Comment:
        await self._comments(comment.post_id).document(comment.id).set(_to_document(comment))
        return comment

    async def delete_comment(self, post_id: str, comment_id: str) -> bool:
        comment_ref = self._comments(post_id).document(comment_id)
        comment_doc = await comment_ref.get()
        if not comment_doc.exists:
            return False
        await comment_ref.delete()
        return True

    async def latest_comments(self, limit: int) -> List[Tuple[Comment, Post]]:
        """Newest comments across all posts, paired with their post. Orphaned comments are left out."""
        query = (
            self.db.collection_group(COMMENTS_SUBCOLLECTION)
            .order_by("created_at", direction=firestore.Query.DESCENDING)
            .limit(limit)
        )
        comments = []
        async for doc in query.stream():
            comment_data = doc.to_dict()
            comment_data['id'] = doc.id
            try:
                comments.append(Comment(**comment_data))
            except ValidationError as validation_error:
                logger.error(f"Data validation error for latest comment {doc.id}: {validation_error}. Data: {comment_data}")

        posts: Dict[str, Optional[Post]] = {}
        latest = []
        for comment in comments:
            if comment.post_id not in posts:
                posts[comment.post_id] = await self.get_post(comment.post_id)
            post = posts[comment.post_id]
            if post is not None:
                latest.append((comment, post))
        return latest

    async def find_commented_posts(self, comment_ids: Iterable[str]) -> Set[str]:
        """IDs of the posts that hold any of `comment_ids`."""
        wanted = set(comment_ids)
        if not wanted:
            return set()
        # Comment IDs alone do not give a document path, so scan the post_id field of every comment.
        post_ids = set()
        query = self.db.collection_group(COMMENTS_SUBCOLLECTION).select(["post_id"])
        async for doc in query.stream():
            if doc.id in wanted:
                post_id = (doc.to_dict() or {}).get("post_id")
                if post_id:
                    post_ids.add(post_id)
        return post_ids
