"""Payment status resolution and coverage stats.

A venue's status comes from its community votes (majority rule, card wins
ties). Only when nobody has voted do we look at the OSM ``payment:*`` tags.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, Optional


class Category(str, Enum):
    CARD = "card"
    GIRO = "giro"
    CASH = "cash"
    UNKNOWN = "unknown"


COLORS = {
    Category.CARD: "#34C759",
    Category.GIRO: "#FFCC00",
    Category.CASH: "#FF3B30",
    Category.UNKNOWN: "#b0bec5",
}

LABELS = {
    Category.CARD: "Accepts All Common Cards",
    Category.GIRO: "Girocard Only",
    Category.CASH: "Cash Only",
}


@dataclass
class VoteTally:
    cash_votes: int = 0
    card_votes: int = 0
    giro_votes: int = 0

    def incremented(self, category: Category) -> "VoteTally":
        """Return a copy with one more vote for ``category``."""
        return VoteTally(
            cash_votes=self.cash_votes + (category == Category.CASH),
            card_votes=self.card_votes + (category == Category.CARD),
            giro_votes=self.giro_votes + (category == Category.GIRO),
        )


@dataclass(frozen=True)
class Status:
    color: str
    text: str
    category: Category


UNKNOWN_STATUS = Status(COLORS[Category.UNKNOWN], "Unknown", Category.UNKNOWN)


def _verified(category: Category, votes: int) -> Status:
    return Status(COLORS[category], f"Verified: {LABELS[category]} ({votes} votes)", category)


def _from_osm(category: Category) -> Status:
    return Status(COLORS[category], f"{LABELS[category]} (OSM)", category)


def status_from_tags(tags: Dict[str, str]) -> Status:
    if tags.get("payment:cards") == "no":
        return _from_osm(Category.CASH)
    if (
        tags.get("payment:visa") == "yes"
        or tags.get("payment:mastercard") == "yes"
        or tags.get("payment:cards") == "yes"
    ):
        return _from_osm(Category.CARD)
    if tags.get("payment:girocard") == "yes":
        return _from_osm(Category.GIRO)
    return UNKNOWN_STATUS


def resolve_status(tally: VoteTally, tags: Optional[Dict[str, str]] = None) -> Status:
    """Majority rule over the tally; tags are only consulted without votes.

    The order of the checks is the tie-break: card beats giro and cash on a
    tie, giro beats cash.
    """
    card, giro, cash = tally.card_votes, tally.giro_votes, tally.cash_votes

    if card >= giro and card >= cash and card > 0:
        return _verified(Category.CARD, card)
    elif giro >= cash and giro > 0:
        return _verified(Category.GIRO, giro)
    elif cash > 0:
        return _verified(Category.CASH, cash)

    if tags:
        return status_from_tags(tags)
    return UNKNOWN_STATUS


# -------------------------
# COVERAGE STATS
# -------------------------
@dataclass(frozen=True)
class AggregateStats:
    total: int = 0
    mapped: int = 0
    percent: int = 0


def _percent(mapped: int, total: int) -> int:
    if total <= 0:
        return 0
    # JS Math.round semantics, not banker's rounding
    return int(100 * mapped / total + 0.5)


def compute_stats(venues: Iterable) -> AggregateStats:
    total = 0
    mapped = 0
    for venue in venues:
        total += 1
        if venue.status.category != Category.UNKNOWN:
            mapped += 1
    return AggregateStats(total=total, mapped=mapped, percent=_percent(mapped, total))


def bump_mapped(stats: AggregateStats) -> AggregateStats:
    """One more venue went from unknown to known."""
    mapped = stats.mapped + 1
    return AggregateStats(total=stats.total, mapped=mapped, percent=_percent(mapped, stats.total))
