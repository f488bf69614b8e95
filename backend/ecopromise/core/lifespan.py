# FILE: backend/ecopromise/core/lifespan.py
# 1. Creates MongoDB indexes on startup; a missing database is logged, not fatal.
# 2. Closes MongoDB and Redis handles on shutdown.

from contextlib import asynccontextmanager
from fastapi import FastAPI
import logging
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import PyMongoError

from .db import get_database, close_mongo_connection, close_redis_connection

logger = logging.getLogger(__name__)

def create_mongo_indexes(db: Database):
    """
    Creates the indexes behind the most frequent lookups and the uniqueness rules.
    """
    logger.info("--- [Lifespan] Optimizing Database Indexes... ---")

    # 1. Users: identity + leaderboard
    db.users.create_index([("email", ASCENDING)], unique=True)
    db.users.create_index([("google_id", ASCENDING)], unique=True)
    db.users.create_index([("username", ASCENDING)], unique=True, sparse=True)
    db.users.create_index([("total_carbon_saved", DESCENDING)])

    # 2. Commitments: profile pages and the public feed
    db.commitments.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])
    db.commitments.create_index([("visibility", ASCENDING), ("created_at", DESCENDING)])

    # 3. Children of a commitment
    db.milestones.create_index([("commitment_id", ASCENDING), ("target_value", ASCENDING)])
    db.comments.create_index([("commitment_id", ASCENDING), ("created_at", DESCENDING)])
    db.progress_updates.create_index([("commitment_id", ASCENDING), ("created_at", DESCENDING)])
    db.progress_updates.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])

    # 4. Membership & social
    db.join_requests.create_index([("user_id", ASCENDING), ("organization_id", ASCENDING)])
    db.join_requests.create_index([("organization_id", ASCENDING), ("status", ASCENDING)])
    db.notifications.create_index([("user_id", ASCENDING), ("read", ASCENDING), ("created_at", DESCENDING)])
    db.challenges.create_index([("start_date", ASCENDING), ("end_date", ASCENDING)])
    db.flags.create_index([("status", ASCENDING), ("created_at", DESCENDING)])

    logger.info("--- [Lifespan] Database Indexes Verified/Created. ---")

def perform_shutdown():
    logger.info("--- [Lifespan] Application shutdown sequence initiated. ---")
    close_mongo_connection()
    close_redis_connection()
    logger.info("--- [Lifespan] All connections closed gracefully. Shutdown complete. ---")

@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("--- [Lifespan] Application startup sequence initiated. ---")
    try:
        create_mongo_indexes(get_database())
    except (PyMongoError, ValueError) as e:
        logger.error(f"--- [Lifespan] Index Creation Failed: {e} ---")

    logger.info("--- [Lifespan] All resources initialized. Application is ready. ---")
    yield
    perform_shutdown()
