"""
Run contact update extraction once for one artifact and print the result.
Run from apps/api: uv run python scripts/run_extraction.py ARTIFACT_ID [--reprocess]
"""
import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path

# Ensure cultivate is importable when run from repo root or apps/api
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

logger = logging.getLogger(__name__)

from cultivate.db.session import async_session
from cultivate.services.suggestions import ReprocessController, run_extraction_job
from cultivate.stores import sql_stores


async def main(artifact_id: str, reprocess: bool) -> int:
    if reprocess:
        async with async_session() as session:
            controller = ReprocessController(sql_stores(session, commit_status_writes=True).artifacts)
            result = await controller.reprocess(artifact_id)
            logger.info("Reset artifact %s to %s", artifact_id, result.status)

    result = await run_extraction_job(artifact_id)
    print(json.dumps(result.model_dump(), indent=2))
    return 0 if result.status != "failed" else 1


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
    )
    parser = argparse.ArgumentParser(description="Extract contact update suggestions from a voice memo.")
    parser.add_argument("artifact_id")
    parser.add_argument("--reprocess", action="store_true", help="Reset a finished artifact to pending first")
    args = parser.parse_args()
    sys.exit(asyncio.run(main(args.artifact_id, args.reprocess)))
