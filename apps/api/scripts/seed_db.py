"""
Seed the database with a demo contact and a transcribed voice memo ready for extraction.
Run from apps/api: uv run python scripts/seed_db.py [--user-id UUID]
"""
import argparse
import asyncio
import logging
import sys
import uuid
from pathlib import Path

# Ensure cultivate is importable when run from repo root or apps/api
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

logger = logging.getLogger(__name__)

from cultivate.db.session import async_session
from cultivate.db.models import Artifact, Contact

DEMO_TRANSCRIPTION = (
    "Had coffee with Dana today. Her partner Sarah and she are moving to Boston next month. "
    "She just got promoted to VP of Engineering at Northwind and is hiring two staff engineers. "
    "Also picked up trail running this spring."
)


async def run_seed(user_id: str) -> None:
    async with async_session() as session:
        contact = Contact(
            user_id=user_id,
            name="Dana Whitfield",
            email="dana@example.com",
            title="Director of Engineering",
            company="Northwind",
            location="Chicago",
            professional_context={
                "current_role": "Director of Engineering",
                "skills": ["Distributed systems", "Hiring"],
            },
            personal_context={"interests": ["Cycling"]},
            field_sources={},
        )
        session.add(contact)
        await session.flush()

        memo = Artifact(
            contact_id=contact.id,
            user_id=user_id,
            type="voice_memo",
            content=DEMO_TRANSCRIPTION,
            transcription=DEMO_TRANSCRIPTION,
            transcription_status="completed",
            ai_parsing_status="pending",
            metadata_={"duration_seconds": 42},
        )
        session.add(memo)
        await session.commit()

        logger.info("Seeded contact %s (%s)", contact.id, contact.name)
        logger.info("Seeded voice memo %s; run: python scripts/run_extraction.py %s", memo.id, memo.id)


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
    )
    parser = argparse.ArgumentParser(description="Seed a demo contact and voice memo.")
    parser.add_argument("--user-id", default=None, help="Owner user id (default: random UUID)")
    args = parser.parse_args()
    owner = args.user_id or str(uuid.uuid4())
    logger.info("Seeding demo data for user %s", owner)
    asyncio.run(run_seed(owner))
