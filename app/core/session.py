"""
Session redirect handling for CareBoard.

The identity provider owns authentication. This module only reacts to its
lifecycle flags and decides where the user should land.
"""

from dataclasses import dataclass
from typing import Callable, Optional, Any, Tuple

from app.core.navigation import DISPLAY_PAGE, ONBOARDING, Navigator
from app.models.schemas import RedirectAction, SessionStateRequest
from app.utils.logger import get_logger

logger = get_logger("session")

LOOKUP_FAILED_TOAST = "We could not check your account. Please complete onboarding."


@dataclass(frozen=True)
class SessionState:
    """Snapshot of the identity provider state."""

    ready: bool = False
    authenticated: bool = False
    email: Optional[str] = None

    @classmethod
    def from_request(cls, body: SessionStateRequest) -> "SessionState":
        email = None
        if body.user and body.user.email:
            email = body.user.email.address or None
        return cls(ready=body.ready, authenticated=body.authenticated, email=email)

    @property
    def key(self) -> Tuple[bool, bool, Optional[str]]:
        return (self.ready, self.authenticated, self.email)


@dataclass
class RedirectDecision:
    action: RedirectAction
    path: Optional[str] = None
    toast: Optional[str] = None


class SessionRedirectController:
    """
    Routes a user after each identity state change.

    Exactly one of login, navigate or nothing happens per transition.
    Login is only requested while the session is ready and not
    authenticated, so it cannot loop once the user is signed in.
    """

    def __init__(
        self,
        check_if_user_exists: Callable[[str], Any],
        navigator: Optional[Navigator] = None,
        login: Optional[Callable[[], None]] = None
    ):
        self.check_if_user_exists = check_if_user_exists
        self.navigator = navigator
        self.login = login
        self._last_key: Optional[Tuple[bool, bool, Optional[str]]] = None

    def on_change(self, state: SessionState) -> RedirectDecision:
        """Evaluate only when the observed state actually changed."""
        if state.key == self._last_key:
            return RedirectDecision(action=RedirectAction.NONE)
        self._last_key = state.key
        return self.evaluate(state)

    def evaluate(self, state: SessionState) -> RedirectDecision:
        if state.ready and not state.authenticated:
            logger.info("Session not authenticated, requesting login")
            if self.login:
                self.login()
            return RedirectDecision(action=RedirectAction.LOGIN)

        if state.email:
            toast = None
            try:
                existing = self.check_if_user_exists(state.email)
            except Exception as e:
                logger.error("Directory lookup failed", email=state.email, error=str(e))
                existing = None
                toast = LOOKUP_FAILED_TOAST

            path = DISPLAY_PAGE if existing else ONBOARDING
            logger.info("Redirecting session", email=state.email, path=path)
            if self.navigator:
                self.navigator.navigate(path)
            return RedirectDecision(action=RedirectAction.NAVIGATE, path=path, toast=toast)

        return RedirectDecision(action=RedirectAction.NONE)
