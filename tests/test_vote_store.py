import logging

import pytest
import requests

from errors import DbError
from payment_status import VoteTally
from tests.fakes import FakeResponse, FakeSession
from vote_store import VoteStore, tally_from_row, tally_to_row

BASE_URL = "https://project.supabase.example"


def vote_rows(count):
    return [
        {"osm_id": f"node/{i}", "name": f"Venue {i}", "cash_votes": i % 3, "ec_votes": 1, "card_votes": 0}
        for i in range(count)
    ]


def paged(rows, page_size):
    """A responder that serves ``rows`` according to the Range header."""
    def respond(method, url, kwargs):
        start, end = (int(n) for n in kwargs["headers"]["Range"].split("-"))
        return FakeResponse(206, rows[start:end + 1])
    pages = (len(rows) // page_size) + 1
    return [respond] * pages


def make_store(responses, page_size=1000):
    session = FakeSession(responses)
    return VoteStore(BASE_URL + "/", "anon-key", timeout=3, page_size=page_size, session=session), session


def test_row_translation_maps_ec_votes_to_giro():
    tally = tally_from_row({"osm_id": "node/1", "cash_votes": 2, "ec_votes": 5, "card_votes": None})
    assert tally == VoteTally(cash_votes=2, card_votes=0, giro_votes=5)
    row = tally_to_row("node/1", None, tally)
    assert row == {"osm_id": "node/1", "name": "Unknown", "cash_votes": 2, "ec_votes": 5, "card_votes": 0}


def test_list_votes_paginates_2500_rows_in_three_pages():
    rows = vote_rows(2500)
    store, session = make_store(paged(rows, 1000))

    votes = store.list_votes()

    assert len(votes) == 2500
    assert len(session.calls) == 3
    ranges = [call[2]["headers"]["Range"] for call in session.calls]
    assert ranges == ["0-999", "1000-1999", "2000-2999"]
    assert session.calls[0][1] == BASE_URL + "/rest/v1/venue_votes"
    assert session.calls[0][2]["headers"]["apikey"] == "anon-key"
    assert all(call[2]["params"]["order"] == "osm_id" for call in session.calls)


def test_list_votes_stops_on_empty_page():
    rows = vote_rows(2000)
    store, session = make_store(paged(rows, 1000))

    assert len(store.list_votes()) == 2000
    assert len(session.calls) == 3


def test_list_votes_treats_416_after_full_pages_as_end_of_data(caplog):
    store, session = make_store([
        FakeResponse(206, vote_rows(1000)),
        FakeResponse(206, vote_rows(2000)[1000:]),
        FakeResponse(416, {"message": "Requested range not satisfiable"}, text="range"),
    ])

    with caplog.at_level(logging.ERROR, logger="vote_store"):
        votes = store.list_votes()

    assert len(votes) == 2000
    assert len(session.calls) == 3
    assert not caplog.records


def test_list_votes_keeps_partial_results_on_failure():
    store, session = make_store([
        FakeResponse(206, vote_rows(1000)),
        requests.ConnectionError("reset by peer"),
    ])

    votes = store.list_votes()

    assert len(votes) == 1000
    assert len(session.calls) == 2


def test_list_votes_http_error_on_first_page_returns_nothing():
    store, _ = make_store([FakeResponse(500, {"message": "boom"}, text="boom")])
    assert store.list_votes() == {}


def test_list_blacklist():
    store, session = make_store([FakeResponse(200, [{"osm_id": "node/7"}, {"osm_id": "way/8"}])])
    assert store.list_blacklist() == {"node/7", "way/8"}
    assert session.calls[0][2]["params"] == {"select": "osm_id"}


def test_list_blacklist_fails_open():
    store, _ = make_store([FakeResponse(401, None, text="unauthorized")])
    assert store.list_blacklist() == set()


def test_upsert_vote_sends_full_row_with_conflict_target():
    store, session = make_store([FakeResponse(201, None)])

    store.upsert_vote("node/1", "Hofbräuhaus", VoteTally(cash_votes=1, card_votes=4, giro_votes=0))

    method, url, kwargs = session.calls[0]
    assert method == "POST"
    assert url == BASE_URL + "/rest/v1/venue_votes"
    assert kwargs["params"] == {"on_conflict": "osm_id"}
    assert "resolution=merge-duplicates" in kwargs["headers"]["Prefer"]
    assert kwargs["json"] == {
        "osm_id": "node/1",
        "name": "Hofbräuhaus",
        "cash_votes": 1,
        "ec_votes": 0,
        "card_votes": 4,
    }


@pytest.mark.parametrize("response", [
    FakeResponse(409, None, text="conflict"),
    requests.Timeout("slow"),
])
def test_upsert_vote_failures_raise_db_error(response):
    store, _ = make_store([response])
    with pytest.raises(DbError):
        store.upsert_vote("node/1", "x", VoteTally(card_votes=1))


def test_insert_report():
    store, session = make_store([FakeResponse(201, None)])

    store.insert_report("node/9", "Zum Franziskaner")

    _, url, kwargs = session.calls[0]
    assert url == BASE_URL + "/rest/v1/venue_suggestions"
    assert kwargs["json"] == {
        "osm_id": "node/9",
        "venue_name": "Zum Franziskaner",
        "suggestion_type": "report_closed",
        "status": "pending",
    }


def test_insert_report_failure():
    store, _ = make_store([FakeResponse(500, None, text="down")])
    with pytest.raises(DbError) as exc_info:
        store.insert_report("node/9", "Zum Franziskaner")
    assert exc_info.value.status_code == 500
