import logging
from typing import Any, Dict, List, Optional

from pymongo import ASCENDING, DESCENDING
from pymongo.database import Database

from utils.cpf import clean_cpf
from utils.mongo import get_database
from .schemas import ConsultationCreate, ConsultationRecord

logger = logging.getLogger(__name__)


class ConsultationService:
    """Histórico de consultas de benefício feitas por cada operador"""

    def __init__(self, db: Optional[Database] = None):
        self.db = db if db is not None else get_database()
        self.collection = self.db["consultations"]
        self.collection.create_index([("operator_id", ASCENDING), ("created_at", DESCENDING)])

    def _to_record(self, doc: Dict[str, Any]) -> ConsultationRecord:
        doc = dict(doc)
        doc["id"] = str(doc.pop("_id"))
        return ConsultationRecord(**doc)

    def create(self, operator_id: str, data: ConsultationCreate) -> ConsultationRecord:
        record = ConsultationRecord(
            operator_id=operator_id,
            cpf=clean_cpf(data.cpf),
            beneficiary_name=data.beneficiary_name,
            benefit_number=data.benefit_number,
        )
        result = self.collection.insert_one(record.model_dump(exclude={"id"}))
        logger.info(f"Consulta registrada para o operador {operator_id}")
        return record.model_copy(update={"id": str(result.inserted_id)})

    def list_by_operator(
        self, operator_id: Optional[str], limit: int = 50
    ) -> List[ConsultationRecord]:
        """Consultas mais recentes primeiro; sem operador, todas (relatório gerencial)"""
        query = {"operator_id": operator_id} if operator_id else {}
        cursor = self.collection.find(query).sort("created_at", DESCENDING).limit(limit)
        return [self._to_record(doc) for doc in cursor]

    def check(
        self,
        operator_id: str,
        cpf: Optional[str] = None,
        benefit_number: Optional[str] = None,
    ) -> Optional[ConsultationRecord]:
        query: Dict[str, Any] = {"operator_id": operator_id}
        if cpf:
            query["cpf"] = clean_cpf(cpf)
        elif benefit_number:
            query["benefit_number"] = benefit_number
        else:
            raise ValueError("CPF ou número do benefício é obrigatório")

        doc = self.collection.find_one(query, sort=[("created_at", DESCENDING)])
        return self._to_record(doc) if doc else None
