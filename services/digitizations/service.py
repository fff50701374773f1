import asyncio
import logging
import re
from datetime import datetime, timedelta
from typing import Any, Dict, List, Mapping, Optional

import aiohttp
import pytz
from pymongo import DESCENDING
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

from exceptions import CorbanError, DuplicateProposalError, NotFoundError
from models.digitization import DigitizationRecord, DigitizationStatus, TERMINAL_STATUSES
from utils.cpf import clean_cpf
from utils.mongo import get_database

logger = logging.getLogger(__name__)

SAO_PAULO = pytz.timezone("America/Sao_Paulo")
DATE_BUCKETS = ("today", "week", "month", "all")


def bucket_start(bucket: str, now: Optional[datetime] = None) -> Optional[datetime]:
    """Início (UTC, sem tzinfo) do período de criação filtrado"""
    now = now or datetime.utcnow()
    if bucket == "today":
        local_now = pytz.utc.localize(now).astimezone(SAO_PAULO)
        local_midnight = SAO_PAULO.localize(
            datetime(local_now.year, local_now.month, local_now.day)
        )
        return local_midnight.astimezone(pytz.utc).replace(tzinfo=None)
    if bucket == "week":
        return now - timedelta(days=7)
    if bucket == "month":
        return now - timedelta(days=30)
    return None


class DigitizationRecorder:
    """Histórico das propostas digitalizadas, chaveado pelo número da proposta"""

    def __init__(self, db: Optional[Database] = None):
        self.db = db if db is not None else get_database()
        self.collection = self.db["digitizations"]
        self.collection.create_index("proposal_number", unique=True)

    def _to_record(self, doc: Dict[str, Any]) -> DigitizationRecord:
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return DigitizationRecord(**doc)

    def create(self, record: DigitizationRecord) -> DigitizationRecord:
        doc = record.model_dump(exclude={"id"})
        doc["cpf"] = clean_cpf(doc["cpf"])
        doc["status"] = record.status.value
        try:
            result = self.collection.insert_one(doc)
        except DuplicateKeyError:
            logger.error(
                f"Tentativa de registrar novamente a proposta {record.proposal_number} ({record.bank})"
            )
            raise DuplicateProposalError(
                f"Proposta {record.proposal_number} já registrada",
                details="O número da proposta é atribuído uma única vez pelo banco",
            )

        logger.info(f"Digitalização registrada: proposta {record.proposal_number} ({record.bank})")
        return record.model_copy(update={"id": str(result.inserted_id), "cpf": doc["cpf"]})

    def get(self, proposal_number: str, bank: Optional[str] = None) -> DigitizationRecord:
        query = {"proposal_number": proposal_number}
        if bank:
            query["bank"] = bank
        doc = self.collection.find_one(query)
        if not doc:
            raise NotFoundError(f"Proposta {proposal_number} não encontrada")
        return self._to_record(doc)

    def update_status(
        self,
        proposal_number: str,
        status: DigitizationStatus,
        formalization_link: Optional[str] = None,
        bank: Optional[str] = None,
    ) -> DigitizationRecord:
        """Atualiza status e link; com `bank`, só altera registros daquele banco"""
        changes: Dict[str, Any] = {
            "status": DigitizationStatus(status).value,
            "updated_at": datetime.utcnow(),
        }
        if formalization_link:
            changes["formalization_link"] = formalization_link

        query = {"proposal_number": proposal_number}
        if bank:
            query["bank"] = bank
        result = self.collection.update_one(query, {"$set": changes})
        if result.matched_count == 0:
            raise NotFoundError(f"Proposta {proposal_number} não encontrada")

        logger.info(f"Proposta {proposal_number} atualizada para {changes['status']}")
        return self.get(proposal_number, bank)

    def list(
        self,
        bank: Optional[str] = None,
        search: Optional[str] = None,
        status: Optional[str] = None,
        date_bucket: str = "all",
        operator_id: Optional[str] = None,
    ) -> List[DigitizationRecord]:
        query: Dict[str, Any] = {}
        if bank:
            query["bank"] = bank
        if status and status != "all":
            query["status"] = status
        if operator_id:
            query["operator_id"] = operator_id

        start = bucket_start(date_bucket)
        if start:
            query["created_at"] = {"$gte": start}

        if search and search.strip():
            term = search.strip()
            conditions = [
                {"client_name": {"$regex": re.escape(term), "$options": "i"}},
                {"proposal_number": {"$regex": re.escape(term)}},
            ]
            digits = clean_cpf(term)
            if digits:
                conditions.append({"cpf": {"$regex": re.escape(digits)}})
            query["$or"] = conditions

        cursor = self.collection.find(query).sort("created_at", DESCENDING)
        return [self._to_record(doc) for doc in cursor]

    def pending(self, bank: Optional[str] = None) -> List[DigitizationRecord]:
        query: Dict[str, Any] = {
            "status": {"$nin": [s.value for s in TERMINAL_STATUSES]}
        }
        if bank:
            query["bank"] = bank
        return [self._to_record(doc) for doc in self.collection.find(query)]

    async def refresh_all(
        self, banks: Mapping[str, Any], bank: Optional[str] = None
    ) -> Dict[str, int]:
        """Reconsulta no parceiro cada proposta ainda não finalizada e aplica as mudanças"""
        checked = 0
        updated_count = 0
        errors = 0

        for record in self.pending(bank):
            partner = banks.get(record.bank)
            if partner is None:
                logger.warning(
                    f"Banco {record.bank} não disponível para atualizar a proposta {record.proposal_number}"
                )
                errors += 1
                continue

            checked += 1
            try:
                update = await partner.fetch_proposal_status(record.proposal_number)
            except (CorbanError, aiohttp.ClientError, asyncio.TimeoutError) as e:
                logger.error(
                    f"Erro ao consultar status da proposta {record.proposal_number}: {str(e)}"
                )
                errors += 1
                continue

            new_status = update.status or record.status
            new_link = update.formalization_link or record.formalization_link
            if new_status == record.status and new_link == record.formalization_link:
                continue

            self.update_status(record.proposal_number, new_status, new_link)
            updated_count += 1

        logger.info(
            f"Atualização de status concluída: {checked} consultadas, {updated_count} alteradas, {errors} erros"
        )
        return {"checked": checked, "updated_count": updated_count, "errors": errors}
