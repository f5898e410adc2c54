"""
Purpose: Destination search box controller (planning phase).
What it does:
- Debounces keystrokes (0.5 s of inactivity) before calling the Geocoder.
- Never sends queries shorter than 3 characters; such input clears the list.
- Last query wins: every keystroke issues a new token and cancels the
  pending debounce/request of the previous one, so a slow answer for an old
  query can never replace the results of a newer one.
- Selecting a candidate closes the dropdown until the text is edited again.
"""

from __future__ import annotations

import asyncio
import logging
from typing import List, Optional

from routing.models import GeocodeResult
from .cancellation import CancellationToken, RequestSlot
from .policy import NavigationPolicy, default_navigation_policy

logger = logging.getLogger(__name__)


class PlaceSearch:
    """
    geocoder is anything with `async search(text) -> List[GeocodeResult]`
    (routing.NominatimClient in production).
    """
    def __init__(self, geocoder, policy: Optional[NavigationPolicy] = None):
        self.geocoder = geocoder
        self.policy = policy or default_navigation_policy()
        self.query: str = ""
        self.results: List[GeocodeResult] = []
        self.selected: Optional[GeocodeResult] = None
        self.is_searching: bool = False
        self._slot = RequestSlot("search")

    async def _debounced_search(self, text: str) -> List[GeocodeResult]:
        await asyncio.sleep(self.policy.search_debounce_s)
        if len(text) < self.policy.min_query_length:
            return []
        self.is_searching = True
        return await self.geocoder.search(text)

    async def on_input(self, text: str) -> Optional[List[GeocodeResult]]:
        """
        Feed one keystroke worth of text.
        Returns the applied results, or None when a newer keystroke superseded it.
        """
        self.query = text
        self.selected = None

        token: CancellationToken = self._slot.issue()
        task = token.bind(asyncio.ensure_future(self._debounced_search(text)))
        await asyncio.wait({task})

        if task.cancelled() or not self._slot.is_current(token):
            logger.debug("Discarding superseded search for %r", text)
            return None

        self.is_searching = False
        self.results = task.result()
        return self.results

    def select(self, result: GeocodeResult) -> GeocodeResult:
        self._slot.cancel()
        self.selected = result
        self.query = result.display_name
        self.results = []
        self.is_searching = False
        return result

    def clear(self) -> None:
        self._slot.cancel()
        self.query = ""
        self.results = []
        self.selected = None
        self.is_searching = False
