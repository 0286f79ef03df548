import logging
import time
from concurrent.futures import ThreadPoolExecutor
from typing import Dict, Iterable, List, Optional, Set

from overpass import Venue
from payment_status import (
    Category,
    VoteTally,
    bump_mapped,
    compute_stats,
    resolve_status,
)
from retry import LoadTracker, RetryPolicy, retry_call

logger = logging.getLogger(__name__)

FILTERS = ("all", Category.CARD.value, Category.GIRO.value, Category.CASH.value)


class VenueCollection:
    """The in-memory venue set. All changes go through this object."""

    def __init__(self, venues: List[Venue]):
        self._venues = list(venues)
        self._by_id = {v.id: v for v in self._venues}
        self.stats = compute_stats(self._venues)

    @classmethod
    def build(cls, venues: Iterable[Venue], votes: Dict[str, VoteTally], blacklist: Set[str]):
        kept = []
        for venue in venues:
            if venue.id in blacklist:
                logger.info("Filtering out blacklisted venue: %s", venue.id)
                continue
            venue.tally = votes.get(venue.id) or VoteTally()
            venue.status = resolve_status(venue.tally, venue.tags)
            kept.append(venue)
        logger.info("%d venues after blacklist filtering", len(kept))
        return cls(kept)

    def __len__(self):
        return len(self._venues)

    def __iter__(self):
        return iter(self._venues)

    def get(self, venue_id: str) -> Venue:
        return self._by_id[venue_id]

    def filtered(self, choice: str = "all") -> List[Venue]:
        if choice == "all":
            return list(self._venues)
        category = Category(choice)
        return [v for v in self._venues if v.status.category == category]

    def cast_vote(self, venue_id: str, category: Category, store) -> Venue:
        """Persist one vote, then apply it locally.

        If the store raises, nothing here changes.
        """
        category = Category(category)
        if category == Category.UNKNOWN:
            raise ValueError("Cannot vote for 'unknown'")
        venue = self.get(venue_id)
        was_unknown = venue.status.category == Category.UNKNOWN

        new_tally = venue.tally.incremented(category)
        store.upsert_vote(venue.id, venue.name, new_tally)

        venue.tally = new_tally
        venue.status = resolve_status(new_tally)
        if was_unknown and venue.status.category != Category.UNKNOWN:
            self.stats = bump_mapped(self.stats)
        return venue


def load_collection(
    fetcher,
    store,
    bbox,
    amenities,
    policy: Optional[RetryPolicy] = None,
    tracker: Optional[LoadTracker] = None,
    sleep=time.sleep,
    on_retry=None,
) -> VenueCollection:
    """Fetch venues (with retries) and votes side by side, then join them.

    Raises RetryExhausted when the venue fetch keeps failing.
    """
    policy = policy or RetryPolicy()
    tracker = tracker or LoadTracker(policy)

    with ThreadPoolExecutor(max_workers=2) as pool:
        venues_future = pool.submit(
            retry_call,
            lambda: fetcher.fetch_venues(bbox, amenities),
            policy,
            tracker,
            sleep,
            on_retry,
        )
        votes_future = pool.submit(_read_store, store)
        venues = venues_future.result()
        votes, blacklist = votes_future.result()

    return VenueCollection.build(venues, votes, blacklist)


def _read_store(store):
    if store is None:
        return {}, set()
    return store.list_votes(), store.list_blacklist()
