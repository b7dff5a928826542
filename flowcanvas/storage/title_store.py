"""Flow title persistence in the simple key-value medium."""

import logging

from flowcanvas.storage.kv_medium import KeyValueMedium

logger = logging.getLogger(__name__)

FLOW_TITLE_SLOT = "flow-title"
DEFAULT_FLOW_TITLE = "Untitled flow"


class FlowTitleStore:
    """Reads and writes the single flow title string. Failures are logged, never raised."""

    def __init__(self, medium: KeyValueMedium, slot: str = FLOW_TITLE_SLOT):
        self.medium = medium
        self.slot = slot
        self._memory = DEFAULT_FLOW_TITLE

    def load(self) -> str:
        if self.medium.available:
            try:
                stored = self.medium.get_item(self.slot)
                if stored and stored.strip():
                    self._memory = stored
                    return stored
            except OSError as e:
                logger.warning(f"Unable to read flow title from storage: {e}")
        return self._memory

    def save(self, title: str) -> str:
        """Persist the committed title; blank input commits the default. Returns the committed value."""
        committed = (title or "").strip() or DEFAULT_FLOW_TITLE
        self._memory = committed
        if self.medium.available:
            try:
                self.medium.set_item(self.slot, committed)
            except OSError as e:
                logger.warning(f"Unable to save flow title to storage: {e}")
        return committed
