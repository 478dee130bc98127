"""
Messages that must survive a page rerun.

Streamlit drops everything drawn before `st.rerun()`, so warnings raised by
a button handler are parked in session state and shown on the next run.
The helpers take any mutable mapping; the app passes `st.session_state`.
"""

from collections.abc import MutableMapping
from typing import Any, Optional

PENDING_WARNINGS_KEY = "pending_warnings"


def queue_warning(state: MutableMapping[str, Any], warning: Optional[str]) -> None:
    """Keep a warning for the next run. Empty warnings are ignored."""
    if not warning:
        return
    pending = list(state.get(PENDING_WARNINGS_KEY, []))
    pending.append(warning)
    state[PENDING_WARNINGS_KEY] = pending


def take_warnings(state: MutableMapping[str, Any]) -> list[str]:
    """Return the parked warnings and forget them."""
    return list(state.pop(PENDING_WARNINGS_KEY, []))
