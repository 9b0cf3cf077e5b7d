from motor.motor_asyncio import AsyncIOMotorClient
from typing import Optional
from pymongo import ASCENDING, DESCENDING

import structlog

from challengehub.core.config import MONGODB_URL, DATABASE_NAME, MONGODB_TRANSACTIONS

logger = structlog.get_logger(__name__)


class Database:
    client: Optional[AsyncIOMotorClient] = None
    
    @classmethod
    async def connect_db(cls):
        """
        Connect to MongoDB.

        With MONGODB_TRANSACTIONS on (the default) the server must be a
        replica set member or a mongos router, otherwise startup fails.
        Turning transactions off is only meant for local single-node setups:
        review, submission and withdrawal writes are then not atomic.
        """
        cls.client = AsyncIOMotorClient(MONGODB_URL, tz_aware=False)
        hello = await cls.client.admin.command("hello")
        supports_transactions = "setName" in hello or hello.get("msg") == "isdbgrid"

        if MONGODB_TRANSACTIONS and not supports_transactions:
            cls.client.close()
            cls.client = None
            raise RuntimeError(
                "MongoDB transactions need a replica set or sharded cluster. "
                "Start mongod with --replSet, or set MONGODB_TRANSACTIONS=false for local development only."
            )
        if not MONGODB_TRANSACTIONS:
            logger.warning(
                "mongodb_transactions_disabled",
                database=DATABASE_NAME,
                detail="multi-record writes are not atomic; not supported for production"
            )

        logger.info("mongodb_connected", database=DATABASE_NAME, transactions=MONGODB_TRANSACTIONS)
        
        # Create indexes
        await cls.create_indexes()
    
    @classmethod
    async def create_indexes(cls):
        """
        Create database indexes.

        The unique indexes carry the record-store invariants: a failed insert
        against one of them is reported to callers as a conflict.
        """
        db = cls.get_db()
        
        # Users: one profile per username
        try:
            await db.users.create_index([("username", ASCENDING)], unique=True)
            await db.users.create_index([("total_points", DESCENDING)])
            logger.info("index_created", collection="users")
        except Exception as e:
            logger.warning("index_create_failed", collection="users", error=str(e))
        
        # Challenges
        try:
            await db.challenges.create_index([("id", ASCENDING)], unique=True)
            await db.challenges.create_index([("status", ASCENDING), ("created_at", DESCENDING)])
            logger.info("index_created", collection="challenges")
        except Exception as e:
            logger.warning("index_create_failed", collection="challenges", error=str(e))
        
        # Acceptances: at most one active acceptance per user
        try:
            await db.challenge_acceptances.create_index([("id", ASCENDING)], unique=True)
            await db.challenge_acceptances.create_index(
                [("username", ASCENDING)],
                unique=True,
                partialFilterExpression={"is_active": True},
                name="uniq_active_acceptance_per_user"
            )
            await db.challenge_acceptances.create_index([("username", ASCENDING), ("challenge_id", ASCENDING)])
            await db.challenge_acceptances.create_index([("status", ASCENDING), ("committed_date", ASCENDING)])
            logger.info("index_created", collection="challenge_acceptances")
        except Exception as e:
            logger.warning("index_create_failed", collection="challenge_acceptances", error=str(e))
        
        # Submissions: one per (username, challenge)
        try:
            await db.challenge_submissions.create_index([("id", ASCENDING)], unique=True)
            await db.challenge_submissions.create_index(
                [("username", ASCENDING), ("challenge_id", ASCENDING)],
                unique=True
            )
            logger.info("index_created", collection="challenge_submissions")
        except Exception as e:
            logger.warning("index_create_failed", collection="challenge_submissions", error=str(e))
        
        # Reviews: one per submission
        try:
            await db.submission_reviews.create_index([("submission_id", ASCENDING)], unique=True)
            await db.submission_reviews.create_index([("status", ASCENDING), ("submission_date", DESCENDING)])
            logger.info("index_created", collection="submission_reviews")
        except Exception as e:
            logger.warning("index_create_failed", collection="submission_reviews", error=str(e))
        
        # Points ledger: one entry per (user, challenge, reason) keeps the penalty sweep idempotent
        try:
            await db.points_records.create_index(
                [("username", ASCENDING), ("challenge_id", ASCENDING), ("reason", ASCENDING)],
                unique=True
            )
            await db.points_records.create_index([("username", ASCENDING), ("awarded_at", DESCENDING)])
            logger.info("index_created", collection="points_records")
        except Exception as e:
            logger.warning("index_create_failed", collection="points_records", error=str(e))
        
        # Audit log
        try:
            await db.challenge_audit_log.create_index([("challenge_id", ASCENDING), ("timestamp", DESCENDING)])
            await db.challenge_audit_log.create_index([("username", ASCENDING), ("timestamp", DESCENDING)])
            logger.info("index_created", collection="challenge_audit_log")
        except Exception as e:
            logger.warning("index_create_failed", collection="challenge_audit_log", error=str(e))
    
    @classmethod
    async def close_db(cls):
        """Close MongoDB connection"""
        if cls.client:
            cls.client.close()
            cls.client = None
            logger.info("mongodb_disconnected")
    
    @classmethod
    def get_db(cls):
        """Get database instance"""
        return cls.client[DATABASE_NAME]
