# FILE: backend/ecopromise/core/db.py
# Lazily-initialised MongoDB and Redis handles.
# The Mongo client is only created on first use so that importing the app never
# needs a running database (tests override get_db with an in-memory client).

import logging
import pymongo
import redis
from pymongo.database import Database
from pymongo.mongo_client import MongoClient
from pymongo.errors import ConnectionFailure
from urllib.parse import urlparse
from typing import Generator, Optional

from .config import settings

logger = logging.getLogger(__name__)

mongo_client: Optional[MongoClient] = None
db_instance: Optional[Database] = None
redis_client: Optional[redis.Redis] = None

# --- Synchronous Connection Logic ---
def _connect_to_mongo() -> Database:
    global mongo_client, db_instance
    logger.info("--- [DB] Attempting to connect to MongoDB... ---")
    try:
        client: MongoClient = pymongo.MongoClient(settings.DATABASE_URI, serverSelectionTimeoutMS=5000)
        client.admin.command('ping')
        db_name = urlparse(settings.DATABASE_URI).path.lstrip('/')
        if not db_name:
            raise ValueError("Database name not found in DATABASE_URI.")
        mongo_client = client
        db_instance = client[db_name]
        logger.info(f"--- [DB] Successfully connected to MongoDB: '{db_name}' ---")
        return db_instance
    except (ConnectionFailure, ValueError) as e:
        logger.critical(f"--- [DB] Could not connect to MongoDB: {e} ---")
        raise

def get_database() -> Database:
    if db_instance is None:
        return _connect_to_mongo()
    return db_instance

def get_redis() -> Optional[redis.Redis]:
    """Returns a shared Redis client, or None when REDIS_URL is not configured or unreachable."""
    global redis_client
    if not settings.REDIS_URL:
        return None
    if redis_client is None:
        try:
            client = redis.from_url(settings.REDIS_URL, decode_responses=True)
            client.ping()
            redis_client = client
            logger.info("--- [DB] Successfully connected to Redis. ---")
        except redis.ConnectionError as e:
            logger.error(f"--- [DB] Could not connect to Redis, real-time fan-out disabled: {e} ---")
            return None
    return redis_client

# --- Dependency Providers ---
def get_db() -> Generator[Database, None, None]:
    yield get_database()

# --- Shutdown Logic ---
def close_mongo_connection():
    global mongo_client, db_instance
    if mongo_client:
        mongo_client.close()
        logger.info("--- [DB] MongoDB connection closed. ---")
    mongo_client = None
    db_instance = None

def close_redis_connection():
    global redis_client
    if redis_client:
        redis_client.close()
        logger.info("--- [DB] Redis connection closed. ---")
    redis_client = None
