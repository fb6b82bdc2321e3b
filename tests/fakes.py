import datetime
from typing import Dict, List, Optional, Set, Tuple

import GateAuth as gate
from domain.comments import Comment
from domain.gate import GateAction
from domain.posts import Post
from services.ai_writing_prompts import SuggestionsResponse, TitleSuggestion

AUTH_PASSWORD = "open-sesame"
DELETE_PASSWORD = "remove-it"


class InMemoryForumStore:
    def __init__(self):
        self.posts: Dict[str, Post] = {}
        self.comments: Dict[str, List[Comment]] = {}

    async def list_posts(self) -> List[Post]:
        return sorted(self.posts.values(), key=lambda p: p.created_at, reverse=True)

    async def get_post(self, post_id: str) -> Optional[Post]:
        return self.posts.get(post_id)

    async def create_post(self, post: Post) -> Post:
        self.posts[post.id] = post
        self.comments.setdefault(post.id, [])
        return post

    async def delete_post(self, post_id: str) -> bool:
        if post_id not in self.posts:
            return False
        del self.posts[post_id]
        self.comments.pop(post_id, None)
        return True

    async def count_comments(self, post_id: str) -> int:
        return len(self.comments.get(post_id, []))

    async def list_comments(self, post_id: str) -> List[Comment]:
        return sorted(self.comments.get(post_id, []), key=lambda c: c.created_at)

    async def get_comment(self, post_id: str, comment_id: str) -> Optional[Comment]:
        return next((c for c in self.comments.get(post_id, []) if c.id == comment_id), None)

    async def create_comment(self, comment: Comment) -> Comment:
        self.comments.setdefault(comment.post_id, []).append(comment)
        return comment

    async def delete_comment(self, post_id: str, comment_id: str) -> bool:
        comments = self.comments.get(post_id, [])
        remaining = [c for c in comments if c.id != comment_id]
        if len(remaining) == len(comments):
            return False
        self.comments[post_id] = remaining
        return True

    async def find_commented_posts(self, comment_ids) -> Set[str]:
        wanted = set(comment_ids)
        return {c.post_id for comments in self.comments.values() for c in comments if c.id in wanted}

    async def latest_comments(self, limit: int) -> List[Tuple[Comment, Post]]:
        everything = [c for comments in self.comments.values() for c in comments]
        everything.sort(key=lambda c: c.created_at, reverse=True)
        return [(c, self.posts[c.post_id]) for c in everything[:limit] if c.post_id in self.posts]


class FakeVerifier:
    def __init__(self, passwords: Optional[Dict[GateAction, str]] = None, error: Optional[Exception] = None):
        self.passwords = passwords if passwords is not None else {
            GateAction.AUTH: AUTH_PASSWORD,
            GateAction.DELETE: DELETE_PASSWORD,
        }
        self.error = error
        self.calls: List[Tuple[str, GateAction]] = []

    async def verify(self, password: str, action: GateAction) -> bool:
        self.calls.append((password, action))
        if self.error is not None:
            raise self.error
        if action not in self.passwords:
            raise gate.PasswordNotConfigured(action.value)
        return password == self.passwords[action]


class FakeSuggester:
    def __init__(self):
        self.requests: List[List[str]] = []

    async def suggest(self, words):
        self.requests.append(list(words))
        return SuggestionsResponse(titles=[TitleSuggestion(title="همس الليل", points=list(words))])


def make_post(post_id: str, title: str = "عنوان", minutes: int = 0, **kwargs) -> Post:
    created = datetime.datetime(2024, 5, 1, tzinfo=datetime.timezone.utc) + datetime.timedelta(minutes=minutes)
    return Post(id=post_id, title=title, content=kwargs.pop("content", "نص المقال"), created_at=created, **kwargs)


def make_comment(comment_id: str, post_id: str = "post-1", parent: Optional[str] = None, minutes: int = 0) -> Comment:
    created = datetime.datetime(2024, 5, 1, tzinfo=datetime.timezone.utc) + datetime.timedelta(minutes=minutes)
    return Comment(
        id=comment_id,
        post_id=post_id,
        parent_comment_id=parent,
        content=f"تعليق {comment_id}",
        created_at=created,
    )
