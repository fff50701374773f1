import asyncio
import logging
import os
from enum import Enum
from typing import Any, Awaitable, Callable, Optional

import aiohttp
from pydantic import BaseModel

from exceptions import CorbanError
from models.digitization import DigitizationStatus, FormalizationLink

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = int(os.getenv("FORMALIZATION_MAX_ATTEMPTS", "15"))
DEFAULT_INTERVAL_SECONDS = float(os.getenv("FORMALIZATION_INTERVAL_SECONDS", "20"))

TRANSIENT_ERRORS = (CorbanError, aiohttp.ClientError, asyncio.TimeoutError)


class CancellationToken:
    """Sinaliza o encerramento de um polling. Depois de cancelado, nenhum resultado é aplicado."""

    def __init__(self):
        self._cancelled = asyncio.Event()

    def cancel(self):
        self._cancelled.set()

    @property
    def cancelled(self) -> bool:
        return self._cancelled.is_set()

    async def wait(self, timeout: float) -> bool:
        """Aguarda o intervalo ou o cancelamento, o que vier primeiro"""
        try:
            await asyncio.wait_for(self._cancelled.wait(), timeout)
        except asyncio.TimeoutError:
            pass
        return self.cancelled


class PollOutcome(str, Enum):
    FOUND = "found"
    EXHAUSTED = "exhausted"
    CANCELLED = "cancelled"


class PollingResult(BaseModel):
    outcome: PollOutcome
    attempts: int
    value: Any = None
    last_error: Optional[str] = None


class TimeoutOutcome(PollingResult):
    """Tentativas esgotadas sem link: o operador deve consultar o parceiro diretamente"""

    outcome: PollOutcome = PollOutcome.EXHAUSTED
    message: str = (
        "Link de formalização não disponível após todas as tentativas. "
        "Consulte a proposta diretamente no banco parceiro."
    )


async def poll_until(
    fetch: Callable[[], Awaitable[Any]],
    is_done: Callable[[Any], bool],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    interval: float = DEFAULT_INTERVAL_SECONDS,
    token: Optional[CancellationToken] = None,
    sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    on_attempt: Optional[Callable[[int, Any], None]] = None,
) -> PollingResult:
    """Chama `fetch` até `is_done` aceitar o resultado, no máximo `max_attempts` vezes.

    A primeira tentativa é imediata e as seguintes respeitam `interval`. Erros transitórios
    contam como tentativa usada. O token é verificado depois de cada chamada, então um
    resultado que chega após o cancelamento é descartado.
    """
    token = token or CancellationToken()
    attempts = 0
    last_error = None

    while attempts < max_attempts:
        if token.cancelled:
            return PollingResult(outcome=PollOutcome.CANCELLED, attempts=attempts)

        attempts += 1
        value = None
        try:
            value = await fetch()
            last_error = None
        except TRANSIENT_ERRORS as e:
            last_error = str(e)
            logger.warning(f"Tentativa {attempts}/{max_attempts} falhou: {last_error}")

        if token.cancelled:
            return PollingResult(outcome=PollOutcome.CANCELLED, attempts=attempts)

        if on_attempt:
            on_attempt(attempts, value)

        if value is not None and is_done(value):
            return PollingResult(outcome=PollOutcome.FOUND, attempts=attempts, value=value)

        if attempts < max_attempts:
            if sleep is not None:
                await sleep(interval)
            elif await token.wait(interval):
                return PollingResult(outcome=PollOutcome.CANCELLED, attempts=attempts)

    return TimeoutOutcome(attempts=attempts, last_error=last_error)


class FormalizationPoller:
    """Liga o polling ao parceiro e ao histórico de digitalizações"""

    def __init__(
        self,
        bank,
        recorder,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        interval: float = DEFAULT_INTERVAL_SECONDS,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
    ):
        self.bank = bank
        self.recorder = recorder
        self.max_attempts = max_attempts
        self.interval = interval
        self.sleep = sleep

    async def run(
        self,
        proposal_number: str,
        token: Optional[CancellationToken] = None,
        on_attempt: Optional[Callable[[int, Any], None]] = None,
    ) -> PollingResult:
        token = token or CancellationToken()
        logger.info(
            f"Iniciando busca do link de formalização da proposta {proposal_number} "
            f"({self.max_attempts} tentativas a cada {self.interval}s)"
        )

        result = await poll_until(
            lambda: self.bank.fetch_formalization_link(proposal_number),
            lambda link: isinstance(link, FormalizationLink) and link.is_ready,
            max_attempts=self.max_attempts,
            interval=self.interval,
            token=token,
            sleep=self.sleep,
            on_attempt=on_attempt,
        )

        if result.outcome == PollOutcome.FOUND and not token.cancelled:
            self.recorder.update_status(
                proposal_number,
                DigitizationStatus.APPROVED,
                formalization_link=result.value.url,
            )
            logger.info(
                f"Link de formalização encontrado para a proposta {proposal_number} "
                f"na tentativa {result.attempts}"
            )
        elif result.outcome == PollOutcome.EXHAUSTED:
            logger.warning(
                f"Link de formalização da proposta {proposal_number} não encontrado "
                f"após {result.attempts} tentativas"
            )
        else:
            logger.info(f"Busca do link da proposta {proposal_number} cancelada")

        return result
