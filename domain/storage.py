from typing import Any, MutableMapping, Optional, Protocol


class StateStorage(Protocol):
    """Persistence for a single piece of per-browser state."""

    def load(self) -> Optional[Any]:
        ...

    def save(self, value: Any) -> None:
        ...


class MemoryStorage:
    def __init__(self, value: Optional[Any] = None):
        self.value = value
        self.saves = 0

    def load(self) -> Optional[Any]:
        return self.value

    def save(self, value: Any) -> None:
        self.value = value
        self.saves += 1


class SessionStorage:
    """
    Stores state under one key of a Starlette session (the signed session cookie),
    so it stays with the browser rather than the server.
    """

    def __init__(self, session: MutableMapping[str, Any], key: str):
        self.session = session
        self.key = key

    def load(self) -> Optional[Any]:
        return self.session.get(self.key)

    def save(self, value: Any) -> None:
        # Reassign so the session middleware sees the change.
        self.session[self.key] = value
