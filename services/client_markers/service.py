import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from exceptions import AccessDeniedError, ConflictError, InvalidInputError, NotFoundError
from services.auth.roles.utils import has_permission
from services.auth.schemas import UserResponse
from services.consultations.service import ConsultationService
from services.notifications.schemas import NotificationCreate
from services.notifications.service import NotificationService
from utils.cpf import clean_cpf, format_cpf
from utils.mongo import get_database
from .schemas import (
    ActiveNegotiation,
    ClientMarker,
    ClientMarkerCreate,
    ClientMarkerStatus,
    ClientMarkerUpdate,
    MarkerAction,
    MarkerHistoryEntry,
    UnmarkedClient,
)

logger = logging.getLogger(__name__)


def format_time_remaining(delta: timedelta) -> str:
    minutes = max(int(delta.total_seconds() // 60), 0)
    hours, minutes = divmod(minutes, 60)
    if hours:
        return f"{hours}h {minutes}min"
    return f"{minutes}min"


def negotiation_expiry(
    status: ClientMarkerStatus, hours: int, now: datetime
) -> Optional[datetime]:
    if status != ClientMarkerStatus.IN_NEGOTIATION:
        return None
    return now + timedelta(hours=hours)


class ClientMarkerService:
    """
    Controle de negociação por cliente. Cada CPF tem uma única marcação; enquanto
    a negociação estiver no prazo, só o responsável (ou a gestão) pode alterá-la.
    Depois do prazo outro operador pode assumir o cliente, e o anterior é notificado.
    """

    def __init__(
        self,
        db: Optional[Database] = None,
        notifications: Optional[NotificationService] = None,
    ):
        self.db = db if db is not None else get_database()
        self.markers = self.db["client_markers"]
        self.history = self.db["client_marker_history"]
        self.notifications = notifications
        self.markers.create_index("cpf", unique=True)
        self.history.create_index([("cpf", ASCENDING), ("created_at", DESCENDING)])

    def _to_marker(self, doc: Dict[str, Any]) -> ClientMarker:
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return ClientMarker(**doc)

    def _clean(self, cpf: str) -> str:
        cleaned = clean_cpf(cpf)
        if len(cleaned) != 11:
            raise InvalidInputError(f"CPF {cpf} inválido")
        return cleaned

    def _record_history(
        self,
        marker: ClientMarker,
        action: MarkerAction,
        user: UserResponse,
        previous: Optional[ClientMarker] = None,
        now: Optional[datetime] = None,
    ):
        entry = MarkerHistoryEntry(
            cpf=marker.cpf,
            action=action,
            status=marker.status,
            previous_status=previous.status if previous else None,
            user_id=user.id,
            user_name=user.name,
            previous_user_name=previous.owner_name if previous else None,
            notes=marker.notes,
            created_at=now or datetime.utcnow(),
        )
        self.history.insert_one(entry.to_document())

    def _check_can_edit(self, marker: ClientMarker, user: UserResponse):
        if marker.owner_id == user.id or has_permission(user.role, "manage_client_markers"):
            return
        raise AccessDeniedError(
            f"Cliente {format_cpf(marker.cpf)} está marcado por {marker.owner_name}",
            details="Apenas o responsável ou a gestão podem alterar esta marcação",
        )

    def find(self, cpf: str) -> Optional[ClientMarker]:
        doc = self.markers.find_one({"cpf": self._clean(cpf)})
        return self._to_marker(doc) if doc else None

    def get(self, cpf: str) -> ClientMarker:
        marker = self.find(cpf)
        if marker is None:
            raise NotFoundError(f"Nenhuma marcação para o CPF {format_cpf(cpf)}")
        return marker

    def list(self, search: Optional[str] = None) -> List[ClientMarker]:
        query: Dict[str, Any] = {}
        if search and search.strip():
            term = search.strip()
            conditions = [
                {"user_name": {"$regex": re.escape(term), "$options": "i"}},
                {"client_name": {"$regex": re.escape(term), "$options": "i"}},
                {"notes": {"$regex": re.escape(term), "$options": "i"}},
            ]
            digits = clean_cpf(term)
            if digits:
                conditions.append({"cpf": {"$regex": re.escape(digits)}})
            query["$or"] = conditions
        cursor = self.markers.find(query).sort("updated_at", DESCENDING)
        return [self._to_marker(doc) for doc in cursor]

    def mark(
        self,
        data: ClientMarkerCreate,
        user: UserResponse,
        now: Optional[datetime] = None,
    ) -> ClientMarker:
        """Marca o cliente; se já houver marcação, atualiza a própria ou assume a de outro operador"""
        now = now or datetime.utcnow()
        cpf = self._clean(data.cpf)
        existing = self.find(cpf)

        if existing is None:
            marker = ClientMarker(
                cpf=cpf,
                client_name=data.client_name,
                status=data.status,
                notes=data.notes,
                user_id=user.id,
                user_name=user.name,
                negotiation_duration_hours=data.negotiation_duration_hours,
                negotiation_expires_at=negotiation_expiry(
                    data.status, data.negotiation_duration_hours, now
                ),
                created_at=now,
                updated_at=now,
            )
            try:
                result = self.markers.insert_one(marker.to_document())
            except DuplicateKeyError:
                raise ConflictError(f"Cliente {format_cpf(cpf)} já foi marcado")
            marker = marker.model_copy(update={"id": str(result.inserted_id)})
            self._record_history(marker, MarkerAction.CREATED, user, now=now)
            logger.info(f"Cliente {format_cpf(cpf)} marcado como {data.status.value} por {user.name}")
            return marker

        if existing.owner_id == user.id:
            update = ClientMarkerUpdate(
                status=data.status,
                notes=data.notes,
                negotiation_duration_hours=data.negotiation_duration_hours,
            )
            return self.update(cpf, update, user, now)

        if existing.negotiation_active(now):
            raise ConflictError(
                f"Cliente {format_cpf(cpf)} em negociação com {existing.owner_name}",
                details=f"A negociação expira em {format_time_remaining(existing.negotiation_expires_at - now)}",
            )

        return self._assume(existing, data, user, now)

    def _assume(
        self,
        existing: ClientMarker,
        data: ClientMarkerCreate,
        user: UserResponse,
        now: datetime,
    ) -> ClientMarker:
        changes = {
            "status": data.status.value,
            "notes": data.notes,
            "client_name": data.client_name or existing.client_name,
            "assumed_by_id": user.id,
            "assumed_by_name": user.name,
            "negotiation_duration_hours": data.negotiation_duration_hours,
            "negotiation_expires_at": negotiation_expiry(
                data.status, data.negotiation_duration_hours, now
            ),
            "updated_at": now,
        }
        self.markers.update_one({"cpf": existing.cpf}, {"$set": changes})
        marker = self.get(existing.cpf)
        self._record_history(marker, MarkerAction.ASSUMED, user, previous=existing, now=now)
        logger.info(
            f"Cliente {format_cpf(existing.cpf)} assumido por {user.name} (antes com {existing.owner_name})"
        )

        if self.notifications is not None:
            self.notifications.create(
                NotificationCreate(
                    user_id=existing.owner_id,
                    type="marker_assumed",
                    title="Cliente assumido",
                    message=f"O cliente {format_cpf(existing.cpf)} foi assumido por {user.name}",
                    cpf=existing.cpf,
                    metadata={"previous_status": existing.status.value},
                )
            )
        return marker

    def update(
        self,
        cpf: str,
        data: ClientMarkerUpdate,
        user: UserResponse,
        now: Optional[datetime] = None,
    ) -> ClientMarker:
        now = now or datetime.utcnow()
        existing = self.get(cpf)
        self._check_can_edit(existing, user)

        status = data.status or existing.status
        hours = data.negotiation_duration_hours or existing.negotiation_duration_hours
        changes: Dict[str, Any] = {
            "status": status.value,
            "negotiation_duration_hours": hours,
            "updated_at": now,
        }
        if data.notes is not None:
            changes["notes"] = data.notes
        # o prazo só é renovado quando a situação ou a duração mudam
        if data.status is not None or data.negotiation_duration_hours is not None:
            changes["negotiation_expires_at"] = negotiation_expiry(status, hours, now)

        self.markers.update_one({"cpf": existing.cpf}, {"$set": changes})
        marker = self.get(existing.cpf)
        self._record_history(marker, MarkerAction.UPDATED, user, previous=existing, now=now)
        logger.info(f"Marcação do cliente {format_cpf(existing.cpf)} atualizada para {status.value}")
        return marker

    def remove(self, cpf: str, user: UserResponse) -> ClientMarker:
        existing = self.get(cpf)
        self._check_can_edit(existing, user)
        self.markers.delete_one({"cpf": existing.cpf})
        self._record_history(existing, MarkerAction.REMOVED, user, previous=existing)
        logger.info(f"Marcação do cliente {format_cpf(existing.cpf)} removida por {user.name}")
        return existing

    def get_history(self, cpf: str) -> List[MarkerHistoryEntry]:
        cursor = self.history.find({"cpf": self._clean(cpf)}).sort("created_at", DESCENDING)
        entries = []
        for doc in cursor:
            doc = dict(doc)
            doc["id"] = str(doc.pop("_id"))
            entries.append(MarkerHistoryEntry(**doc))
        return entries

    def unmarked(self, operator_id: str, limit: int = 500) -> List[UnmarkedClient]:
        """Clientes consultados pelo operador que ainda não têm marcação"""
        consultations = ConsultationService(self.db).list_by_operator(operator_id, limit)
        marked = set(
            self.markers.distinct("cpf", {"cpf": {"$in": [c.cpf for c in consultations]}})
        )

        clients: Dict[str, UnmarkedClient] = {}
        for consultation in consultations:
            if not consultation.cpf or consultation.cpf in marked or consultation.cpf in clients:
                continue
            clients[consultation.cpf] = UnmarkedClient(
                cpf=consultation.cpf,
                beneficiary_name=consultation.beneficiary_name,
                benefit_number=consultation.benefit_number,
                consulted_at=consultation.created_at,
            )
        return list(clients.values())

    def negotiations_control(self, now: Optional[datetime] = None) -> List[ActiveNegotiation]:
        """Negociações em andamento para a gestão, as que vencem primeiro no topo"""
        now = now or datetime.utcnow()
        cursor = self.markers.find(
            {"status": ClientMarkerStatus.IN_NEGOTIATION.value}
        ).sort("negotiation_expires_at", ASCENDING)

        negotiations = []
        for doc in cursor:
            marker = self._to_marker(doc)
            expires_at = marker.negotiation_expires_at
            is_expired = expires_at is None or expires_at <= now
            negotiations.append(
                ActiveNegotiation(
                    cpf=marker.cpf,
                    client_name=marker.client_name,
                    operator_name=marker.user_name,
                    assumed_by_name=marker.assumed_by_name,
                    created_at=marker.created_at,
                    negotiation_expires_at=expires_at,
                    negotiation_duration_hours=marker.negotiation_duration_hours,
                    notes=marker.notes,
                    time_remaining=None if is_expired else format_time_remaining(expires_at - now),
                    is_expired=is_expired,
                )
            )
        return negotiations
