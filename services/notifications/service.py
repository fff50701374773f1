import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from bson import ObjectId
from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from exceptions import NotFoundError
from utils.mongo import get_database
from .schemas import Notification, NotificationCreate

logger = logging.getLogger(__name__)


class NotificationService:
    """Avisos para os operadores (marcações assumidas, propostas atualizadas etc.)"""

    def __init__(self, db: Optional[Database] = None):
        self.db = db if db is not None else get_database()
        self.collection = self.db["notifications"]
        self.collection.create_index([("user_id", ASCENDING), ("created_at", DESCENDING)])

    def _to_notification(self, doc: Dict[str, Any]) -> Notification:
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return Notification(**doc)

    def create(self, data: NotificationCreate) -> Notification:
        notification = Notification(**data.model_dump())
        result = self.collection.insert_one(notification.model_dump(exclude={"id"}))
        logger.info(f"Notificação '{data.type}' criada para o usuário {data.user_id}")
        return notification.model_copy(update={"id": str(result.inserted_id)})

    def list_by_user(self, user_id: str, limit: int = 50) -> List[Notification]:
        cursor = (
            self.collection.find({"user_id": user_id})
            .sort("created_at", DESCENDING)
            .limit(limit)
        )
        return [self._to_notification(doc) for doc in cursor]

    def unread_count(self, user_id: str) -> int:
        return self.collection.count_documents({"user_id": user_id, "is_read": False})

    def mark_as_read(self, notification_id: str, user_id: str) -> Notification:
        """Marca como lida; notificações de outro usuário são tratadas como inexistentes"""
        if not ObjectId.is_valid(notification_id):
            raise NotFoundError(f"Notificação {notification_id} não encontrada")

        query = {"_id": ObjectId(notification_id), "user_id": user_id}
        result = self.collection.update_one(
            query, {"$set": {"is_read": True, "read_at": datetime.utcnow()}}
        )
        if result.matched_count == 0:
            raise NotFoundError(f"Notificação {notification_id} não encontrada")
        return self._to_notification(self.collection.find_one(query))

    def mark_all_as_read(self, user_id: str) -> int:
        result = self.collection.update_many(
            {"user_id": user_id, "is_read": False},
            {"$set": {"is_read": True, "read_at": datetime.utcnow()}},
        )
        return result.modified_count
