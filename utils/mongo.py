import os
import logging
from pymongo import MongoClient
from pymongo.database import Database
from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)


class MongoManager:
    _instance = None
    _client = None

    def __new__(cls):
        if not cls._instance:
            cls._instance = super(MongoManager, cls).__new__(cls)
        return cls._instance

    @classmethod
    def get_client(cls) -> MongoClient:
        """
        Singleton method to get or create the Mongo client
        """
        if not cls._client:
            mongodb_url = os.getenv("MONGODB_URL")

            if not mongodb_url:
                raise ValueError(
                    "MONGODB_URL não configurada. Verifique seu arquivo .env"
                )

            cls._client = MongoClient(mongodb_url)
            logger.info("Cliente MongoDB criado com sucesso")
        return cls._client

    @classmethod
    def get_database(cls) -> Database:
        return cls.get_client()[os.getenv("MONGODB_DATABASE", "consulta_inss")]

    @classmethod
    def disconnect(cls):
        """
        Fecha o cliente MongoDB
        """
        if cls._client:
            cls._client.close()
            cls._client = None
            logger.info("Cliente MongoDB desconectado com sucesso")


def get_database() -> Database:
    return MongoManager.get_database()


def close_mongo_connection():
    """
    Call this during application shutdown to close the Mongo connection
    """
    MongoManager.disconnect()
