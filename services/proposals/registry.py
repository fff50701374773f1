import logging
import os
import time
from typing import Dict, Type

from cachetools import TTLCache

from exceptions import CorbanError, NotFoundError
from .banks.banrisul_bank import BanrisulBank
from .banks.base import PartnerBank
from .banks.c6_bank import C6Bank
from .banks.safra_bank import SafraBank
from .workflow import ProposalWorkflow

logger = logging.getLogger(__name__)

BANKS: Dict[str, Type[PartnerBank]] = {
    C6Bank.slug: C6Bank,
    BanrisulBank.slug: BanrisulBank,
    SafraBank.slug: SafraBank,
}

_instances: Dict[str, PartnerBank] = {}


def get_supported_bank(bank: str) -> str:
    """Dependency que só valida o slug, sem criar o cliente do parceiro"""
    if bank not in BANKS:
        raise NotFoundError(
            f"Banco {bank} não suportado",
            details=f"Bancos disponíveis: {', '.join(BANKS)}",
        )
    return bank


def get_partner_bank(slug: str) -> PartnerBank:
    """Instância única por banco, criada no primeiro uso"""
    get_supported_bank(slug)
    if slug not in _instances:
        try:
            _instances[slug] = BANKS[slug]()
        except EnvironmentError as e:
            logger.error(f"Banco {slug} sem configuração: {str(e)}")
            raise CorbanError(
                f"Banco {slug} não configurado",
                title="Configuração Ausente",
                details=str(e),
                status_code=503,
            )
        logger.info(f"Banco parceiro registrado: {_instances[slug].bank_name}")
    return _instances[slug]


def get_bank(bank: str) -> PartnerBank:
    """Dependency que resolve o banco parceiro pelo slug da rota"""
    return get_partner_bank(bank)


def get_configured_banks() -> Dict[str, PartnerBank]:
    """Todos os bancos com credenciais configuradas, usados na atualização de status"""
    banks = {}
    for slug in BANKS:
        try:
            banks[slug] = get_partner_bank(slug)
        except CorbanError:
            logger.warning(f"Banco {slug} ignorado por falta de configuração")
    return banks


async def close_partner_banks():
    for bank in _instances.values():
        await bank.close()
    _instances.clear()


class WorkflowCache(TTLCache):
    """TTLCache que cancela o fluxo (e a consulta do link) ao descartá-lo"""

    def _discard(self, workflow: ProposalWorkflow):
        if workflow.polling_active:
            logger.info(f"Fluxo {workflow.id} expirado durante a consulta do link")
        workflow.cancel()

    def popitem(self):
        key, workflow = super().popitem()
        self._discard(workflow)
        return key, workflow

    def expire(self, time=None):
        expired = super().expire(time) or []
        for _, workflow in expired:
            self._discard(workflow)
        return expired


class WorkflowStore:
    """Fluxos em andamento, em memória e com expiração"""

    def __init__(self, ttl: int = None, maxsize: int = 1000, timer=time.monotonic):
        ttl = ttl or int(os.getenv("WORKFLOW_TTL_SECONDS", "7200"))
        self._workflows: TTLCache = WorkflowCache(maxsize=maxsize, ttl=ttl, timer=timer)

    def add(self, workflow: ProposalWorkflow) -> ProposalWorkflow:
        self._workflows[workflow.id] = workflow
        return workflow

    def get(self, workflow_id: str, bank: str = None) -> ProposalWorkflow:
        self._workflows.expire()
        workflow = self._workflows.get(workflow_id)
        if workflow is None or (bank and workflow.context.bank != bank):
            raise NotFoundError(f"Fluxo {workflow_id} não encontrado ou expirado")
        return workflow

    def remove(self, workflow_id: str):
        self._workflows.pop(workflow_id, None)


workflow_store = WorkflowStore()
