"""
MongoDB Connection Utility

MongoDB stores every entity of the portal as self-contained documents:
- users / recruiters: principals, with embedded follow edges,
  notifications and verification state
- posts / comments: the social feed
- jobs / applications: postings and the hiring pipeline

Relationship edges are embedded id-lists rather than join tables.
"""
from pymongo import ASCENDING, DESCENDING, MongoClient
from pymongo.database import Database

from jobportal.core.config import get_settings
from jobportal.core.log import get_logger

log = get_logger(__name__)

# Global client (connection pooling handled internally by pymongo)
_client: MongoClient = None
_db: Database = None


def get_mongo_client() -> MongoClient:
    """Get or create MongoDB client (singleton pattern)"""
    global _client
    if _client is None:
        _client = MongoClient(get_settings().mongodb_uri)
    return _client


def get_mongo_db() -> Database:
    """Get the portal database"""
    global _db
    if _db is None:
        client = get_mongo_client()
        _db = client[get_settings().mongodb_db]
    return _db


def get_database() -> Database:
    """
    Dependency for FastAPI route injection.
    Tests override this to hand in an in-memory database.
    """
    return get_mongo_db()


def test_mongo_connection(db: Database = None) -> bool:
    """
    Test if MongoDB is reachable.
    Returns True if connection successful, False otherwise.
    """
    try:
        db = db if db is not None else get_mongo_db()
        # ping command checks connection
        db.command("ping")
        return True
    except Exception as e:
        log.error("MongoDB connection failed: %s", e)
        return False


# Collection name constants (avoid typos)
COLLECTIONS = {
    "users": "users",
    "recruiters": "recruiters",
    "posts": "posts",
    "comments": "comments",
    "jobs": "jobs",
    "applications": "applications",
}


def init_mongo_indexes(db: Database = None):
    """
    Create indexes. Call this once during app startup.

    The unique indexes are what enforce email/username uniqueness;
    application code only translates the DuplicateKeyError.
    """
    db = db if db is not None else get_mongo_db()

    users = db[COLLECTIONS["users"]]
    users.create_index("email", unique=True)
    users.create_index("username", unique=True)
    users.create_index("external_id", unique=True, sparse=True)
    users.create_index("reset_token_hash", sparse=True)

    recruiters = db[COLLECTIONS["recruiters"]]
    recruiters.create_index("email", unique=True)
    recruiters.create_index("reset_token_hash", sparse=True)

    db[COLLECTIONS["posts"]].create_index([("created_at", DESCENDING)])
    db[COLLECTIONS["comments"]].create_index("post")

    jobs = db[COLLECTIONS["jobs"]]
    jobs.create_index([("company", ASCENDING), ("created_at", DESCENDING)])
    jobs.create_index([("is_active", ASCENDING), ("expires_at", ASCENDING)])

    # One application per (user, job)
    applications = db[COLLECTIONS["applications"]]
    applications.create_index([("user", ASCENDING), ("job", ASCENDING)], unique=True)
    applications.create_index([("recruiter", ASCENDING), ("status", ASCENDING)])

    log.info("MongoDB indexes created successfully")
