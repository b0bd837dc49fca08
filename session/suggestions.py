"""
Facilitator suggestions from per-person state.

Only confirmed tracks produce suggestions, so a person who has briefly
left the frame does not keep triggering alerts. The newest suggestions
are kept first.
"""

import logging
from typing import List, Sequence

from tracking.body_language import BodyLanguage
from tracking.data_models import TrackSnapshot

logger = logging.getLogger(__name__)

LOW_ATTENTION = 35.0
HIGH_STRESS = 75.0


def suggestions_for(snapshot: TrackSnapshot) -> List[str]:
    """Suggestions triggered by a single snapshot."""
    person = snapshot.label
    suggestions = []

    if snapshot.attention < LOW_ATTENTION:
        suggestions.append(f"{person} attention is dropping. Ask a question.")
    if snapshot.stress > HIGH_STRESS:
        suggestions.append(f"{person} looks stressed. Suggest a break?")
    if snapshot.body_language == BodyLanguage.FIDGETING.value:
        suggestions.append(f"{person} is fidgeting. They might be anxious.")
    if snapshot.body_language == BodyLanguage.SLOUCHING.value:
        suggestions.append(f"{person} is slouching (low engagement).")

    return suggestions


class SuggestionEngine:
    """
    Bounded, newest-first list of suggestions.

    Per frame, at most `per_frame` of the new suggestions (the last ones
    generated) are kept, ahead of older ones; the list is capped at
    `capacity`.
    """

    def __init__(self, capacity: int = 10, per_frame: int = 4, enabled: bool = True):
        self.capacity = capacity
        self.per_frame = per_frame
        self.enabled = enabled
        self._suggestions: List[str] = []

    @property
    def suggestions(self) -> List[str]:
        return list(self._suggestions)

    def update(self, snapshots: Sequence[TrackSnapshot]) -> List[str]:
        """
        Generate suggestions for a frame's snapshots.

        Returns:
            The new suggestions of this frame (empty when disabled)
        """
        if not self.enabled:
            return []

        new = []
        for snapshot in snapshots:
            if snapshot.is_confirmed:
                new.extend(suggestions_for(snapshot))

        if new:
            kept = new[-self.per_frame:] if self.per_frame > 0 else []
            self._suggestions = (kept + self._suggestions)[:self.capacity]
            logger.debug(f"{len(new)} new suggestions")

        return new

    def clear(self):
        self._suggestions = []
