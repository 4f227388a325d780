import logging

from pymongo import AsyncMongoClient
from pymongo.asynchronous.database import AsyncDatabase
from pymongo.errors import PyMongoError

from config import settings
from database.route_repository import RouteRepository
from database.activity_repository import ActivityRepository

logger = logging.getLogger(__name__)


class DatabaseManager:
    """Manages MongoDB database connections using async PyMongo."""

    def __init__(self):
        self.client: AsyncMongoClient | None = None
        self.db: AsyncDatabase | None = None

    async def connect(self):
        """Connect to MongoDB and make sure the route indexes exist."""
        try:
            logger.info(f"Connecting to MongoDB at {settings.mongodb_url}")
            self.client = AsyncMongoClient(settings.mongodb_url)
            self.db = self.client[settings.mongodb_database]

            # Test the connection
            await self.client.admin.command("ping")
            logger.info("Successfully connected to MongoDB")
        except PyMongoError as e:
            logger.error(f"Failed to connect to MongoDB: {e}")
            raise

        await self.ensure_indexes()

    async def ensure_indexes(self):
        """Create the indexes route matching relies on."""
        await RouteRepository(self.db).ensure_indexes()
        await ActivityRepository(self.db).ensure_indexes()
        logger.info("Database indexes ensured")

    async def disconnect(self):
        """Disconnect from MongoDB."""
        if self.client:
            await self.client.close()
            logger.info("Disconnected from MongoDB")

    async def ping(self) -> bool:
        """
        Check if database connection is alive.

        Returns:
            True if connection is alive, False otherwise
        """
        if self.client is None:
            return False
        try:
            await self.client.admin.command("ping")
            return True
        except PyMongoError as e:
            logger.error(f"Database ping failed: {e}")
            return False


# Global database manager instance
db_manager = DatabaseManager()


def get_db() -> AsyncDatabase:
    """
    Dependency function to get database instance for FastAPI.
    """
    if db_manager.db is None:
        raise RuntimeError("Database not connected. Call db_manager.connect() first.")
    return db_manager.db
