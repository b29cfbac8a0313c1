import asyncio
import logging

from src.database import engine, Base

# Import all models to ensure they are registered in Base.metadata
from src.analysis.models import AnalysisJob  # noqa: F401

logger = logging.getLogger(__name__)


async def init_models(drop: bool = False):
    async with engine.begin() as conn:
        if drop:
            await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables created: %s", ", ".join(sorted(Base.metadata.tables)))


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO)
    asyncio.run(init_models())
