# Run from cron: python -m souq.scripts.recompute_scores
from souq.core.config import RANKING_BATCH_SIZE
from souq.core.db import AsyncSessionLocal, init_models
from souq.core.logging_config import configure_logging
from souq.services.ranking_service import recompute_all_scores
import asyncio


async def run_recompute():
    await init_models()
    async with AsyncSessionLocal() as session:
        updated = await recompute_all_scores(session, RANKING_BATCH_SIZE)
        print(f"Recomputed scores for {updated} products")


if __name__ == "__main__":
    configure_logging()
    asyncio.run(run_recompute())
