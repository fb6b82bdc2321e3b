import enum
import logging
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from domain.storage import StateStorage

logger = logging.getLogger('uvicorn.error')

PROVENANCE_STORAGE_KEY = "forum.user-content"


class ContentKind(str, enum.Enum):
    POST = "post"
    COMMENT = "comment"


class ProvenanceRecord(BaseModel):
    posts: List[str] = Field(default_factory=list)
    comments: List[str] = Field(default_factory=list)


class ProvenanceTracker:
    """
    Remembers which posts and comments were created from this browser.

    Only used to highlight "your" content; it is never an access check.
    IDs are appended without deduplication, only membership matters.
    """

    def __init__(self, storage: StateStorage, max_entries: Optional[int] = None):
        self.storage = storage
        self.max_entries = max_entries
        self._ids: Optional[Dict[ContentKind, List[str]]] = None

    def _state(self) -> Dict[ContentKind, List[str]]:
        if self._ids is None:
            self._ids = self._load()
        return self._ids

    def _load(self) -> Dict[ContentKind, List[str]]:
        raw = self.storage.load()
        ids: Dict[ContentKind, List[str]] = {ContentKind.POST: [], ContentKind.COMMENT: []}
        if raw is None:
            return ids
        if not isinstance(raw, dict):
            logger.warning(f"Discarding malformed provenance data of type {type(raw).__name__}.")
            return ids
        for kind, field in ((ContentKind.POST, "posts"), (ContentKind.COMMENT, "comments")):
            values = raw.get(field)
            if isinstance(values, list):
                ids[kind] = [v for v in values if isinstance(v, str)]
        return ids

    def record_created(self, kind: ContentKind, content_id: str) -> None:
        ids = self._state()[kind]
        ids.append(content_id)
        if self.max_entries is not None and len(ids) > self.max_entries:
            del ids[: len(ids) - self.max_entries]
        self.storage.save(self.snapshot().model_dump())

    def was_created_by_me(self, kind: ContentKind, content_id: str) -> bool:
        return content_id in self._state()[kind]

    def snapshot(self) -> ProvenanceRecord:
        state = self._state()
        return ProvenanceRecord(
            posts=list(state[ContentKind.POST]),
            comments=list(state[ContentKind.COMMENT]),
        )
