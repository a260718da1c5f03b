"""
Database Connection

Creates the MongoDB client shared by the authentication and score services.
"""

from pymongo.mongo_client import MongoClient
from pymongo.server_api import ServerApi

from ..utils.game_logger import game_logger


def connect_database(mongo_uri: str, db_name: str):
    """
    Connect to MongoDB and return the application database.

    Raises:
        pymongo.errors.PyMongoError: If the server cannot be reached
    """
    client = MongoClient(mongo_uri, server_api=ServerApi('1'))
    try:
        client.admin.command('ping')
    except Exception as e:
        game_logger.logger.error(f"MongoDB connection error: {e}")
        client.close()
        raise
    game_logger.logger.info(f"Connected to MongoDB database '{db_name}'")
    return client[db_name]
