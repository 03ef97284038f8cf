"""Seed the default interest tags into the tags catalogue.  Safe to re-run."""
import asyncio
import sys
sys.path.insert(0, ".")

from sqlalchemy import select
from app.database import async_session_factory
from app.models.enums import TagCategory
from app.models.tag import Tag


DEFAULT_TAGS = [
    {"name": "basketball", "description": "Pickup games and watching the league", "category": TagCategory.SPORTS},
    {"name": "running", "description": "Road, trail and track running", "category": TagCategory.SPORTS},
    {"name": "badminton", "description": "Casual and club badminton", "category": TagCategory.SPORTS},
    {"name": "board games", "description": "Strategy and party board games", "category": TagCategory.GAMING},
    {"name": "esports", "description": "Competitive video gaming", "category": TagCategory.GAMING},
    {"name": "language exchange", "description": "Practising a new language together", "category": TagCategory.LEARNING},
    {"name": "study group", "description": "Exam preparation and shared study sessions", "category": TagCategory.LEARNING},
    {"name": "street food", "description": "Night markets and hole-in-the-wall spots", "category": TagCategory.FOOD},
    {"name": "home cooking", "description": "Cooking and swapping recipes", "category": TagCategory.FOOD},
    {"name": "backpacking", "description": "Budget travel and hostels", "category": TagCategory.TRAVEL},
    {"name": "road trips", "description": "Weekend drives and scenic routes", "category": TagCategory.TRAVEL},
    {"name": "live music", "description": "Concerts, gigs and festivals", "category": TagCategory.MUSIC},
    {"name": "guitar", "description": "Playing or learning the guitar", "category": TagCategory.MUSIC},
    {"name": "programming", "description": "Side projects and open source", "category": TagCategory.TECHNOLOGY},
    {"name": "photography", "description": "Cameras, editing and photo walks", "category": TagCategory.TECHNOLOGY},
    {"name": "streetwear", "description": "Sneakers and street fashion", "category": TagCategory.FASHION},
    {"name": "thrifting", "description": "Second-hand and vintage finds", "category": TagCategory.FASHION},
    {"name": "science fiction", "description": "Sci-fi novels and short stories", "category": TagCategory.READING},
    {"name": "book club", "description": "Reading and discussing a book each month", "category": TagCategory.READING},
    {"name": "volunteering", "description": "Community service and charity events", "category": TagCategory.OTHER},
]


async def seed():
    async with async_session_factory() as session:
        for t in DEFAULT_TAGS:
            existing = await session.execute(select(Tag).where(Tag.name == t["name"]))
            if existing.scalar_one_or_none() is None:
                session.add(Tag(**t))
                print(f"  Seeded tag {t['name']!r}: {t['category'].value}")
            else:
                print(f"  Tag {t['name']!r} already exists, skipping.")
        await session.commit()
    print("Done seeding tags.")


if __name__ == "__main__":
    asyncio.run(seed())
