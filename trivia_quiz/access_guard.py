"""
Screen admission rules for the quiz UI.

The guard holds no state of its own; every call evaluates the session
state it is given.
"""
from dataclasses import dataclass
from typing import Optional, Union

from .models import Screen, SessionState


@dataclass(frozen=True)
class GuardDecision:
    """Outcome of a navigation attempt."""
    admitted: bool
    redirect: Optional[Screen] = None


def _coerce_screen(screen: Union[Screen, str]) -> Screen:
    if isinstance(screen, Screen):
        return screen
    return Screen(screen)


def guard(state: SessionState, screen: Union[Screen, str]) -> GuardDecision:
    """
    Decide whether a screen may be shown for the given state.

    Args:
        state: Current session state
        screen: Requested screen, as a Screen or its string value

    Returns:
        GuardDecision with the redirect target filled in when denied

    Raises:
        ValueError: If the screen name is unknown
    """
    screen = _coerce_screen(screen)

    if screen is Screen.CONFIGURE:
        if not state.has_started or state.is_completed:
            return GuardDecision(admitted=True)
        return GuardDecision(admitted=False, redirect=Screen.ATTEMPT)

    if screen is Screen.ATTEMPT:
        if state.has_started and not state.is_completed:
            return GuardDecision(admitted=True)
        if state.is_completed:
            return GuardDecision(admitted=False, redirect=Screen.RESULTS)
        return GuardDecision(admitted=False, redirect=Screen.CONFIGURE)

    # Results
    if state.is_completed:
        return GuardDecision(admitted=True)
    return GuardDecision(admitted=False, redirect=Screen.CONFIGURE)


def resolve_screen(state: SessionState, screen: Union[Screen, str]) -> Screen:
    """Follow redirects until an admitted screen is reached."""
    target = _coerce_screen(screen)
    visited = set()
    while target not in visited:
        visited.add(target)
        decision = guard(state, target)
        if decision.admitted:
            return target
        target = decision.redirect
    # The rules cannot cycle for a consistent state; fall back to configuration
    return Screen.CONFIGURE


def landing_screen(state: SessionState) -> Screen:
    """The screen a user with no particular destination should see."""
    if state.is_completed:
        return Screen.RESULTS
    if state.has_started:
        return Screen.ATTEMPT
    return Screen.CONFIGURE


def leave_warning(state: SessionState) -> Optional[str]:
    """Warning to show before abandoning an attempt, or None if nothing would be lost."""
    if state.has_started and not state.is_completed and state.current_index < len(state.questions):
        return "Are you sure you want to leave the quiz? Your progress will be lost."
    return None
