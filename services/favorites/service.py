import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from exceptions import ConflictError, NotFoundError
from utils.cpf import clean_cpf, format_cpf
from utils.mongo import get_database
from .schemas import FavoriteClient, FavoriteClientCreate, FavoriteClientUpdate

logger = logging.getLogger(__name__)


class FavoriteClientService:
    """Carteira de clientes favoritos de cada operador"""

    def __init__(self, db: Optional[Database] = None):
        self.db = db if db is not None else get_database()
        self.collection = self.db["favorite_clients"]
        self.collection.create_index([("user_id", ASCENDING), ("cpf", ASCENDING)], unique=True)

    def _to_client(self, doc: Dict[str, Any]) -> FavoriteClient:
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return FavoriteClient(**doc)

    def _query(self, client_id: str, user_id: str) -> Dict[str, Any]:
        if not ObjectId.is_valid(client_id):
            raise NotFoundError(f"Cliente {client_id} não encontrado")
        return {"_id": ObjectId(client_id), "user_id": user_id}

    def list_by_user(self, user_id: str, status: Optional[str] = None) -> List[FavoriteClient]:
        query: Dict[str, Any] = {"user_id": user_id}
        if status and status != "all":
            query["status"] = status
        cursor = self.collection.find(query).sort("updated_at", DESCENDING)
        return [self._to_client(doc) for doc in cursor]

    def create(self, user_id: str, data: FavoriteClientCreate) -> FavoriteClient:
        client = FavoriteClient(user_id=user_id, **data.model_dump())
        client = client.model_copy(update={"cpf": clean_cpf(data.cpf)})
        doc = client.model_dump(exclude={"id"})
        doc["status"] = client.status.value
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            raise ConflictError(f"Cliente {format_cpf(client.cpf)} já está nos favoritos")

        logger.info(f"Cliente {format_cpf(client.cpf)} adicionado aos favoritos de {user_id}")
        return client.model_copy(update={"id": str(result.inserted_id)})

    def update(self, client_id: str, user_id: str, data: FavoriteClientUpdate) -> FavoriteClient:
        query = self._query(client_id, user_id)
        changes = data.model_dump(exclude_unset=True)
        if data.status is not None:
            changes["status"] = data.status.value
        changes["updated_at"] = datetime.utcnow()

        result = self.collection.update_one(query, {"$set": changes})
        if result.matched_count == 0:
            raise NotFoundError(f"Cliente {client_id} não encontrado")
        return self._to_client(self.collection.find_one(query))

    def delete(self, client_id: str, user_id: str):
        result = self.collection.delete_one(self._query(client_id, user_id))
        if result.deleted_count == 0:
            raise NotFoundError(f"Cliente {client_id} não encontrado")
        logger.info(f"Cliente favorito {client_id} removido")
