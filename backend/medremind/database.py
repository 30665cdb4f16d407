import os
import logging
from beanie import init_beanie
from motor.motor_asyncio import AsyncIOMotorClient
from medremind.models import User, Medication

logger = logging.getLogger(__name__)

async def init_database():
    mongodb_url = os.getenv("MONGODB_URL", "mongodb://localhost:27017")
    db_name = os.getenv("MONGODB_DB", "medremind_db")
    client = AsyncIOMotorClient(mongodb_url)

    await init_beanie(
        database=client[db_name],
        document_models=[User, Medication]
    )
    logger.info(f"Beanie initialised on database '{db_name}'")
