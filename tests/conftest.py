import pytest

from overpass import Venue
from payment_status import VoteTally


@pytest.fixture
def venues():
    return [
        Venue(id="node/1", lat=48.137, lon=11.575, name="Augustiner Keller", tags={"amenity": "biergarten"}),
        Venue(id="node/2", lat=48.138, lon=11.576, name="Café Frischhut", tags={"amenity": "cafe", "payment:cards": "no"}),
        Venue(id="node/3", lat=48.139, lon=11.577, tags={"amenity": "bar"}),
        Venue(id="node/4", lat=48.140, lon=11.578, name="Schneider Bräuhaus", tags={"amenity": "pub"}),
    ]


@pytest.fixture
def votes():
    return {
        "node/1": VoteTally(cash_votes=1, card_votes=3, giro_votes=0),
        "node/4": VoteTally(cash_votes=0, card_votes=0, giro_votes=2),
    }
