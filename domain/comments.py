import datetime
import logging
import uuid
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

from pydantic import BaseModel, Field

from domain.content import AuthoredInput, utc_now
from domain.posts import PostRef

logger = logging.getLogger('uvicorn.error')


class CommentCreate(AuthoredInput):
    parent_comment_id: Optional[str] = None


class Comment(BaseModel):
    id: str = Field(default_factory=lambda: f"comment-{uuid.uuid4().hex}")
    post_id: str
    parent_comment_id: Optional[str] = None  # None for top-level comments
    content: str
    author_name: Optional[str] = None
    is_anonymous: bool = True
    created_at: datetime.datetime = Field(default_factory=utc_now)

    class Config:
        from_attributes = True


class CommentView(Comment):
    created_by_me: bool = False


class CommentNode(CommentView):
    replies: List["CommentNode"] = Field(default_factory=list)


class LatestComment(BaseModel):
    id: str
    content: str
    author_name: Optional[str] = None
    is_anonymous: bool
    created_at: datetime.datetime
    post: PostRef


def build_comment_tree(comments: Sequence[Comment]) -> List[CommentNode]:
    """
    Rebuild the reply forest of one post from its flat comment rows.

    Siblings keep the order they have in `comments` (callers pass them oldest first).
    A comment whose parent is not in `comments` becomes a root instead of being
    dropped. Parent links that form a loop are broken at the loop member that comes
    first in `comments`, which is promoted to root. Rows repeating an earlier ID are
    skipped; every other comment appears in the result exactly once.
    """
    nodes: Dict[str, CommentNode] = {}
    ordered: List[CommentNode] = []
    for comment in comments:
        if comment.id in nodes:
            logger.warning(f"Skipping duplicate comment row with id {comment.id}.")
            continue
        node = CommentNode.model_validate(comment.model_dump(exclude={"replies"}))
        nodes[node.id] = node
        ordered.append(node)

    parents = _resolve_parents(ordered, nodes)

    roots: List[CommentNode] = []
    for node in ordered:
        parent_id = parents[node.id]
        if parent_id is None:
            roots.append(node)
        else:
            nodes[parent_id].replies.append(node)
    return roots


def _resolve_parents(ordered: List[CommentNode], nodes: Dict[str, CommentNode]) -> Dict[str, Optional[str]]:
    parents: Dict[str, Optional[str]] = {}
    for node in ordered:
        parent_id = node.parent_comment_id
        if parent_id is not None and parent_id not in nodes:
            logger.debug(f"Comment {node.id} references missing parent {parent_id}; treating it as top-level.")
            parent_id = None
        parents[node.id] = parent_id

    position = {node.id: index for index, node in enumerate(ordered)}
    unvisited, in_progress, done = 0, 1, 2
    marks = dict.fromkeys(parents, unvisited)
    for node in ordered:
        path: List[str] = []
        current = node.id
        while current is not None and marks[current] == unvisited:
            marks[current] = in_progress
            path.append(current)
            current = parents[current]
        if current is not None and marks[current] == in_progress:
            cycle = path[path.index(current):]
            head = min(cycle, key=position.__getitem__)
            logger.warning(f"Comments {cycle} form a parent cycle; promoting {head} to top-level.")
            parents[head] = None
        for comment_id in path:
            marks[comment_id] = done
    return parents


def iter_thread(roots: Sequence[CommentNode]) -> Iterator[Tuple[CommentNode, int]]:
    """Yield (node, depth) in display order, roots at depth 0, without recursion."""
    stack = [(node, 0) for node in reversed(roots)]
    while stack:
        node, depth = stack.pop()
        yield node, depth
        stack.extend((child, depth + 1) for child in reversed(node.replies))


def count_nodes(roots: Sequence[CommentNode]) -> int:
    return sum(1 for _ in iter_thread(roots))


def clamp_depth(roots: List[CommentNode], max_depth: int) -> List[CommentNode]:
    """
    Keep at most max_depth levels (depths 0 to max_depth - 1). Replies that would
    sit deeper are moved up to depth max_depth - 1, as direct replies of their
    ancestor at depth max_depth - 2, keeping display order. Modifies the nodes
    in place; with max_depth == 1 every comment becomes a root.
    """
    if max_depth < 1:
        raise ValueError("max_depth must be at least 1")
    if max_depth == 1:
        flat = [node for node, _ in iter_thread(roots)]
        for node in flat:
            node.replies = []
        return flat
    stack = [(node, 0) for node in reversed(roots)]
    while stack:
        node, depth = stack.pop()
        if depth == max_depth - 2:
            if node.replies:
                descendants = [descendant for descendant, _ in iter_thread(node.replies)]
                for descendant in descendants:
                    descendant.replies = []
                node.replies = descendants
            continue
        stack.extend((child, depth + 1) for child in reversed(node.replies))
    return roots
