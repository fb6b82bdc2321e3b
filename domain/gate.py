import enum
import logging
from typing import Optional, Protocol

from pydantic import BaseModel, ValidationError

from domain.storage import StateStorage

logger = logging.getLogger('uvicorn.error')

DEFAULT_MAX_ATTEMPTS = 3


class GateAction(str, enum.Enum):
    AUTH = "auth"  # creating posts and comments
    DELETE = "delete"


def gate_storage_key(action: GateAction) -> str:
    return f"forum.gate.{action.value}"


class PasswordVerifier(Protocol):
    async def verify(self, password: str, action: GateAction) -> bool:
        ...


class LockoutState(BaseModel):
    failed_attempts: int = 0
    disabled: bool = False


class GateStatus(BaseModel):
    action: GateAction
    failed_attempts: int
    disabled: bool
    remaining_attempts: int


class GateLock:
    """
    Shared-password gate for one class of actions.

    A correct password authenticates the gate for the lifetime of this object.
    A lock built without a verifier can only report its lockout state.
    Failures are counted cumulatively; reaching max_attempts disables the gate
    permanently. There is no way back from disabled, even with the right password.
    """

    def __init__(
        self,
        action: GateAction,
        verifier: Optional[PasswordVerifier],
        storage: StateStorage,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    ):
        self.action = action
        self.verifier = verifier
        self.storage = storage
        self.max_attempts = max_attempts
        self.authenticated = False
        self._state: Optional[LockoutState] = None

    @property
    def state(self) -> LockoutState:
        if self._state is None:
            self._state = self._load()
        return self._state

    def _load(self) -> LockoutState:
        raw = self.storage.load()
        if raw is None:
            return LockoutState()
        try:
            state = LockoutState.model_validate(raw)
        except ValidationError as e:
            logger.warning(f"Discarding malformed lockout state for '{self.action.value}' gate: {e}")
            return LockoutState()
        if state.failed_attempts >= self.max_attempts:
            state.disabled = True
        return state

    @property
    def is_disabled(self) -> bool:
        return self.state.disabled

    @property
    def failed_attempts(self) -> int:
        return self.state.failed_attempts

    @property
    def remaining_attempts(self) -> int:
        if self.is_disabled:
            return 0
        return max(self.max_attempts - self.failed_attempts, 0)

    def status(self) -> GateStatus:
        return GateStatus(
            action=self.action,
            failed_attempts=self.failed_attempts,
            disabled=self.is_disabled,
            remaining_attempts=self.remaining_attempts,
        )

    async def authenticate(self, password: str) -> bool:
        if self.verifier is None:
            raise RuntimeError(f"'{self.action.value}' gate was built without a password verifier")
        if self.is_disabled:
            logger.warning(f"Rejected attempt on disabled '{self.action.value}' gate.")
            return False

        try:
            is_valid = await self.verifier.verify(password, self.action)
        except Exception as e:
            # An unreachable verifier counts as a wrong password.
            logger.error(f"Password verification for '{self.action.value}' gate failed: {e}")
            is_valid = False

        if is_valid:
            self.authenticated = True
            return True

        state = self.state
        state.failed_attempts += 1
        if state.failed_attempts >= self.max_attempts:
            state.disabled = True
            logger.warning(f"'{self.action.value}' gate disabled after {state.failed_attempts} failed attempts.")
        self.storage.save(state.model_dump())
        return False
