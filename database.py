"""
MongoDB access for the Beauty Parlour API.

The client is opened once by init_db() (called from the app lifespan) and
released by close_db(). Helpers below take a collection name so routes never
touch pymongo directly.
"""
import logging
import os
from typing import Optional, Sequence, Union

from dotenv import load_dotenv
from pydantic import BaseModel
from pymongo import ASCENDING, MongoClient, ReturnDocument
from pymongo.database import Database
from pymongo.errors import OperationFailure

load_dotenv()

logger = logging.getLogger(__name__)

DATABASE_URL = os.getenv("DATABASE_URL")
DATABASE_NAME = os.getenv("DATABASE_NAME", "beauty_parlour")

client: Optional[MongoClient] = None
db: Optional[Database] = None


def init_db(url: Optional[str] = None) -> Optional[Database]:
    """Connect to MongoDB unless a database is already bound."""
    global client, db
    if db is not None:
        return db
    url = url or DATABASE_URL
    if not url:
        logger.warning("DATABASE_URL not set, running without a database")
        return None
    client = MongoClient(url)
    db = client.get_default_database(default=DATABASE_NAME)
    logger.info("MongoDB connected (database=%s)", db.name)
    return db


def close_db() -> None:
    global client, db
    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")
    client = None
    db = None


def _collection(collection_name: str):
    if db is None:
        raise RuntimeError("Database not available. Check DATABASE_URL and DATABASE_NAME environment variables.")
    return db[collection_name]


def ensure_unique_index(collection_name: str, fields: Sequence[str]) -> bool:
    """Create a compound unique index. Returns False if existing data violates it."""
    try:
        _collection(collection_name).create_index(
            [(field, ASCENDING) for field in fields], unique=True
        )
    except OperationFailure as e:
        logger.error("Could not create unique index on %s%s: %s", collection_name, tuple(fields), e)
        return False
    logger.info("Unique index ensured on %s%s", collection_name, tuple(fields))
    return True


def create_document(collection_name: str, data: Union[BaseModel, dict]) -> str:
    if isinstance(data, BaseModel):
        data_dict = data.model_dump(by_alias=True)
    else:
        data_dict = dict(data)
    result = _collection(collection_name).insert_one(data_dict)
    return str(result.inserted_id)


def find_document(collection_name: str, filter_dict: dict) -> Optional[dict]:
    return _collection(collection_name).find_one(filter_dict)


def update_document(collection_name: str, filter_dict: dict, fields: dict) -> Optional[dict]:
    """Apply a $set to the first match and return the updated document."""
    return _collection(collection_name).find_one_and_update(
        filter_dict, {"$set": fields}, return_document=ReturnDocument.AFTER
    )


def delete_document(collection_name: str, filter_dict: dict) -> Optional[dict]:
    """Delete the first match and return it."""
    return _collection(collection_name).find_one_and_delete(filter_dict)
