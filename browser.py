# Copyright (C) 2025 Fabian Valle-simmons
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.

import asyncio
import logging
import math
import requests
from typing import List, Optional, Sequence, TypeVar
from services import GitHubFetcher, RelayResult, RepoSummaryItem, NO_SUMMARY_MESSAGE

logger = logging.getLogger(__name__)

PAGE_SIZE = 9
MIN_QUERY_LENGTH = 2
NO_README_MESSAGE = "No README found for this profile."

T = TypeVar("T")


def paginate(items: Sequence[T], page: int, page_size: int = PAGE_SIZE) -> List[T]:
    """1-based page slice. Out-of-range pages are empty."""
    total_pages = math.ceil(len(items) / page_size)
    if page < 1 or page > total_pages:
        return []
    start = (page - 1) * page_size
    return list(items[start:start + page_size])


class RepositoryBrowser:
    """
    Profile view for one GitHub user: username autocomplete, repository list,
    and an AI summary of the profile README.

    `relay` is anything with an async `summarize(readme) -> RelayResult`
    (AIExplainer in-process, RelayClient over HTTP).
    """

    def __init__(self, fetcher: GitHubFetcher, relay, debounce_seconds: float = 0.3, page_size: int = PAGE_SIZE):
        self.fetcher = fetcher
        self.relay = relay
        self.debounce_seconds = debounce_seconds
        self.page_size = page_size

        self.username: Optional[str] = None
        self.repos: List[RepoSummaryItem] = []
        self.summary: Optional[str] = None
        self.suggestions: List[str] = []
        self.loading = False

        self._timer: Optional[asyncio.Task] = None
        self._generation = 0

    # --- Autocomplete ---

    def search_suggestions(self, partial: str) -> Optional[asyncio.Task]:
        """
        Schedule a user-search lookup after the debounce delay.

        A newer call cancels the pending timer. A lookup that is already in
        flight still runs, but its result is dropped if a newer call was made.
        Must be called from a running event loop.
        """
        if self._timer is not None and not self._timer.done():
            self._timer.cancel()
        self._timer = None
        self._generation += 1

        if len(partial) < MIN_QUERY_LENGTH:
            self.suggestions = []
            return None

        self._timer = asyncio.ensure_future(self._lookup_after_delay(partial, self._generation))
        return self._timer

    async def _lookup_after_delay(self, partial: str, generation: int) -> bool:
        """Returns False when a newer call superseded this lookup."""
        await asyncio.sleep(self.debounce_seconds)
        # Past the timer: from here on only the generation check applies
        self._timer = None

        try:
            users = await asyncio.to_thread(self.fetcher.search_users, partial)
        except requests.RequestException as e:
            logger.error(f"❌ User search failed for '{partial}': {e}")
            users = []

        if generation != self._generation:
            logger.debug(f"🔍 Dropping stale suggestions for '{partial}'")
            return False
        self.suggestions = users
        return True

    # --- Profile ---

    async def load_profile(self, username: str):
        self.loading = True
        self.username = username
        self.repos = []
        self.summary = None
        try:
            self.repos = await asyncio.to_thread(self.fetcher.list_user_repos, username)
            if not self.repos:
                return

            readme = await asyncio.to_thread(self.fetcher.get_readme, username, username)
            if readme is None:
                self.summary = NO_README_MESSAGE
                return

            try:
                result = await self.relay.summarize(readme)
            except Exception:
                logger.exception(f"❌ Summary request failed for {username}")
                result = RelayResult(error=NO_SUMMARY_MESSAGE)
            self.summary = result.text if result.ok else NO_SUMMARY_MESSAGE
        except requests.RequestException as e:
            logger.error(f"❌ Failed to load profile for {username}: {e}")
        finally:
            self.loading = False

    # --- Pagination ---

    @property
    def total_pages(self) -> int:
        return math.ceil(len(self.repos) / self.page_size)

    @property
    def page_numbers(self) -> List[int]:
        return list(range(1, self.total_pages + 1))

    def paginate(self, page: int) -> List[RepoSummaryItem]:
        return paginate(self.repos, page, self.page_size)
