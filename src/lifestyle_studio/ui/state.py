"""State management utilities for the Lifestyle Studio UI.

Gradio keeps one ``gr.State`` value per browser tab.  The page builds it with
:func:`create_session` when the tab loads, so every event of that tab shares
one :class:`StudioSession` from the start.
"""

import logging

from lifestyle_studio.core.config import config
from lifestyle_studio.core.session import StudioSession

logger = logging.getLogger(__name__)


def create_session() -> StudioSession:
    """Create the studio session for a newly loaded tab."""
    session = StudioSession(batch_size=config.default_batch_size)
    logger.info(f"Created new session: {session!r}")
    return session


def initialize_session(state: StudioSession | None = None) -> StudioSession:
    """Initialize or return the per-tab studio session.

    Args:
        state: Existing session, or None when a handler runs without one

    Returns:
        Ready StudioSession instance
    """
    if state is None:
        state = create_session()
    return state
