"""
Client routes and the navigator used by page services.

A navigation carries an optional transient state object, the same way the
web client passes page state between routes.
"""

from dataclasses import dataclass, field
from typing import Any, List

PROFILE = "/profile"
ONBOARDING = "/onboarding"
SCREENING_SCHEDULES = "/screening-schedules"

# Landing page for users that already have a profile
DISPLAY_PAGE = PROFILE


@dataclass
class Navigation:
    path: str
    state: Any = None


@dataclass
class Navigator:
    """Collects navigations requested by a page service."""

    history: List[Navigation] = field(default_factory=list)

    def navigate(self, path: str, state: Any = None) -> Navigation:
        navigation = Navigation(path=path, state=state)
        self.history.append(navigation)
        return navigation
