"""Client for the hosted vote store (Supabase, spoken to over its REST API).

Tables:
    venue_votes        osm_id, name, cash_votes, ec_votes, card_votes
    venue_blacklist    osm_id
    venue_suggestions  osm_id, venue_name, suggestion_type, status

``ec_votes`` is the historical column name for girocard votes; it is only
spelled out here.
"""
import logging
from typing import Dict, Set

import requests

from errors import DbError
from payment_status import VoteTally
from settings import VOTE_PAGE_SIZE

logger = logging.getLogger(__name__)

VOTES_TABLE = "venue_votes"
BLACKLIST_TABLE = "venue_blacklist"
SUGGESTIONS_TABLE = "venue_suggestions"


def tally_from_row(row: Dict) -> VoteTally:
    return VoteTally(
        cash_votes=int(row.get("cash_votes") or 0),
        card_votes=int(row.get("card_votes") or 0),
        giro_votes=int(row.get("ec_votes") or 0),
    )


def tally_to_row(venue_id: str, name: str, tally: VoteTally) -> Dict:
    return {
        "osm_id": venue_id,
        "name": name or "Unknown",
        "cash_votes": tally.cash_votes,
        "ec_votes": tally.giro_votes,
        "card_votes": tally.card_votes,
    }


class VoteStore:
    def __init__(self, base_url, api_key, timeout=15, page_size=VOTE_PAGE_SIZE, session=None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.page_size = page_size
        self.session = session or requests.Session()
        self.headers = {
            "apikey": api_key,
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }

    def _url(self, table):
        return f"{self.base_url}/rest/v1/{table}"

    def _get(self, table, params, extra_headers=None):
        headers = dict(self.headers)
        if extra_headers:
            headers.update(extra_headers)
        resp = self.session.get(self._url(table), params=params, headers=headers, timeout=self.timeout)
        if resp.status_code == 416:
            # range starts past the last row
            return []
        if resp.status_code not in (200, 206):
            raise requests.HTTPError(f"{table}: HTTP {resp.status_code} {resp.text[:200]}")
        return resp.json()

    # -------------------------
    # READS (failures degrade, never raise)
    # -------------------------
    def list_votes(self) -> Dict[str, VoteTally]:
        """All vote rows, read page by page. A failed page ends the read early."""
        votes = {}
        start = 0
        while True:
            end = start + self.page_size - 1
            try:
                rows = self._get(
                    VOTES_TABLE,
                    {"select": "*", "order": "osm_id"},
                    {"Range": f"{start}-{end}"},
                )
            except (requests.RequestException, ValueError) as e:
                logger.error("Error fetching votes (rows %d-%d): %s", start, end, e)
                break
            if not rows:
                break
            for row in rows:
                if row.get("osm_id"):
                    votes[row["osm_id"]] = tally_from_row(row)
            if len(rows) < self.page_size:
                break
            start += self.page_size

        logger.info("Fetched %d votes from the vote store", len(votes))
        return votes

    def list_blacklist(self) -> Set[str]:
        try:
            rows = self._get(BLACKLIST_TABLE, {"select": "osm_id"})
        except (requests.RequestException, ValueError) as e:
            logger.error("Error fetching blacklist: %s", e)
            return set()
        blacklist = {row["osm_id"] for row in rows or [] if row.get("osm_id")}
        logger.info("Fetched %d blacklisted venues", len(blacklist))
        return blacklist

    # -------------------------
    # WRITES (failures raise DbError)
    # -------------------------
    def _post(self, table, payload, params=None, prefer="return=minimal"):
        headers = dict(self.headers)
        headers["Prefer"] = prefer
        try:
            resp = self.session.post(
                self._url(table), json=payload, params=params, headers=headers, timeout=self.timeout
            )
        except requests.RequestException as e:
            raise DbError(f"{table}: request failed: {e}") from e
        if resp.status_code not in (200, 201, 204):
            raise DbError(f"{table}: HTTP {resp.status_code} {resp.text[:200]}", resp.status_code)

    def upsert_vote(self, venue_id: str, name: str, tally: VoteTally):
        """Insert or fully replace the vote row for ``venue_id``."""
        self._post(
            VOTES_TABLE,
            tally_to_row(venue_id, name, tally),
            params={"on_conflict": "osm_id"},
            prefer="resolution=merge-duplicates,return=minimal",
        )
        logger.info("Saved votes for %s: %s", venue_id, tally)

    def insert_report(self, venue_id: str, name: str, kind: str = "report_closed"):
        self._post(SUGGESTIONS_TABLE, {
            "osm_id": venue_id,
            "venue_name": name,
            "suggestion_type": kind,
            "status": "pending",
        })
        logger.info("Report %s submitted for %s", kind, venue_id)
