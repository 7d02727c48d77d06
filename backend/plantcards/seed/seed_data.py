"""
Seed data script for the Plant Flashcards database.
Populates a handful of published admin plants and a starter collection.
"""
from sqlalchemy.orm import Session

from plantcards.database import SessionLocal
from plantcards.models import Collection, CollectionPlant, Plant
from plantcards.services.plant_names import slugify

SAMPLE_PLANTS = [
    {
        "scientific_name": "Acer palmatum var. dissectum",
        "genus": "Acer", "specific_epithet": "palmatum", "variety": "dissectum",
        "common_name": "Cutleaf Japanese maple", "family": "Sapindaceae",
        "native_to": "Japan, Korea", "bloom_period": "Spring",
    },
    {
        "scientific_name": "Quercus robur",
        "genus": "Quercus", "specific_epithet": "robur",
        "common_name": "English oak", "family": "Fagaceae",
        "native_to": "Europe", "bloom_period": "Spring",
    },
    {
        "scientific_name": "Lavandula angustifolia 'Hidcote'",
        "genus": "Lavandula", "specific_epithet": "angustifolia", "cultivar": "Hidcote",
        "common_name": "English lavender", "family": "Lamiaceae",
        "native_to": "Mediterranean", "bloom_period": "Summer",
    },
    {
        "scientific_name": "x Chitalpa tashkentensis",
        "genus": "Chitalpa", "specific_epithet": "tashkentensis",
        "hybrid_marker": "x", "hybrid_marker_position": "before_genus",
        "common_name": "Chitalpa", "family": "Bignoniaceae", "bloom_period": "Summer",
    },
    {
        "scientific_name": "Cornus sericea subsp. occidentalis",
        "genus": "Cornus", "specific_epithet": "sericea",
        "infraspecies_rank": "subsp.", "infraspecies_epithet": "occidentalis",
        "common_name": "Western dogwood", "family": "Cornaceae",
        "native_to": "Western North America", "bloom_period": "Late spring",
    },
]


def seed_database(session: Session = None) -> int:
    """Seed the database with sample plants. Returns the number of plants added."""
    own_session = session is None
    session = session or SessionLocal()

    try:
        # Check if already seeded
        if session.query(Plant).first():
            print("Database already seeded, skipping...")
            return 0

        print("Seeding database...")
        plants = [
            Plant(**data, slug=slugify(data["scientific_name"]), is_published=True, is_admin_plant=True)
            for data in SAMPLE_PLANTS
        ]
        session.add_all(plants)
        session.flush()

        starter = Collection(
            name="Garden basics",
            description="Common ornamental plants to start with",
            is_published=True,
            is_admin_collection=True,
        )
        session.add(starter)
        session.flush()
        session.add_all(CollectionPlant(collection_id=starter.id, plant_id=plant.id) for plant in plants[:3])

        session.commit()
        print(f"Seeded {len(plants)} plants and 1 collection.")
        return len(plants)
    except Exception:
        session.rollback()
        raise
    finally:
        if own_session:
            session.close()


if __name__ == "__main__":
    seed_database()
