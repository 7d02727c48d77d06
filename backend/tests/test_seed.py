from plantcards.models import Collection, Plant
from plantcards.seed.seed_data import SAMPLE_PLANTS, seed_database


def test_seed_adds_sample_plants_once(client, db_session):
    assert seed_database(db_session) == len(SAMPLE_PLANTS)
    assert seed_database(db_session) == 0
    assert db_session.query(Plant).count() == len(SAMPLE_PLANTS)
    assert db_session.query(Collection).one().plant_count == 3

    listing = client.get("/plants").json()
    assert listing["count"] == len(SAMPLE_PLANTS)
    assert "quercus-robur" in {p["slug"] for p in listing["plants"]}
