import asyncio
import json
import os
import traceback
from abc import ABC, abstractmethod
from datetime import datetime, timedelta
from typing import Any, Dict, Optional, Tuple
from urllib.parse import urljoin

import aiohttp
import structlog
from aiohttp import ClientTimeout, TCPConnector
from cachetools import TTLCache
from dotenv import load_dotenv
from pydantic import BaseModel
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from exceptions import CommunicationError
from utils.http_errors import describe_status

load_dotenv()

structlog.configure(
    processors=[
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.JSONRenderer(),
    ]
)
logger = structlog.get_logger()

token_cache = TTLCache(maxsize=32, ttl=3600)


class PartnerResponse(BaseModel):
    status: int
    data: Any = None
    text: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300


class PartnerAPIClient(ABC):
    """Cliente HTTP base dos parceiros: sessão aiohttp, token com expiração e tratamento de rede"""

    provider_name = "PARCEIRO"
    required_env_vars: Tuple[str, ...] = ()

    def __init__(self, base_url: str):
        self.check_environment_variables()
        self.base_url = base_url.rstrip("/") + "/"
        self.session: Optional[aiohttp.ClientSession] = None
        self.token: Optional[str] = None
        self.token_expiration: Optional[datetime] = None
        self.timeout = ClientTimeout(
            total=float(os.getenv("PARTNER_HTTP_TIMEOUT_SECONDS", "30"))
        )

    def check_environment_variables(self) -> None:
        """Verifica se as variáveis de ambiente estão carregadas corretamente."""
        for var in self.required_env_vars:
            if not os.getenv(var):
                logger.error("missing_env_var", variable=var)
                raise EnvironmentError(f"Variável de ambiente {var} não está definida.")

    async def start_session(self):
        """Inicia uma nova sessão HTTP."""
        if self.session is None or self.session.closed:
            self.session = aiohttp.ClientSession(
                connector=TCPConnector(limit=100, ttl_dns_cache=300),
                timeout=self.timeout,
                headers={
                    "Accept": "application/json",
                    "Content-Type": "application/json",
                },
            )
            logger.info("session_created", provider=self.provider_name)

    async def close_session(self):
        """Fecha a sessão HTTP de forma segura."""
        if self.session and not self.session.closed:
            await self.session.close()
            logger.info("session_closed", provider=self.provider_name)

    @property
    def cache_key(self) -> str:
        return f"{self.provider_name}:{self.base_url}"

    def _is_token_expired(self) -> bool:
        if not self.token or not self.token_expiration:
            return True
        return datetime.now() >= self.token_expiration

    @abstractmethod
    async def _fetch_token(self) -> Tuple[str, int]:
        """Obtém um novo token do parceiro. Retorna o token e a validade em minutos."""
        pass

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(CommunicationError),
        reraise=True,
    )
    async def authenticate(self) -> str:
        """Autentica no parceiro com retry automático e cache do token."""
        cached = token_cache.get(self.cache_key)
        if cached:
            self.token, self.token_expiration = cached
        if not self._is_token_expired():
            return self.token

        token, valid_minutes = await self._fetch_token()
        if not token:
            raise CommunicationError(
                "Token não foi recebido após login.",
                title="Falha na Autenticação",
            )

        self.token = token
        # margem de 5 minutos antes da expiração real
        self.token_expiration = datetime.now() + timedelta(
            minutes=max(valid_minutes - 5, 1)
        )
        token_cache[self.cache_key] = (self.token, self.token_expiration)
        logger.info(
            "authentication_success",
            provider=self.provider_name,
            expiration=self.token_expiration.isoformat(),
        )
        return self.token

    def _auth_headers(self) -> Dict[str, str]:
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(
        self,
        method: str,
        endpoint: str,
        data: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        authenticated: bool = True,
        retry_auth: bool = True,
    ) -> PartnerResponse:
        url = urljoin(self.base_url, endpoint)
        headers = dict(headers or {})

        if authenticated:
            await self.authenticate()
            headers.update(self._auth_headers())

        await self.start_session()

        try:
            async with self.session.request(
                method, url, json=data, params=params, headers=headers
            ) as response:
                response_text = await response.text()
                logger.info(
                    "api_request",
                    provider=self.provider_name,
                    method=method,
                    endpoint=endpoint,
                    status_code=response.status,
                )
                status = response.status
        except asyncio.TimeoutError:
            logger.error("request_timeout", provider=self.provider_name, endpoint=endpoint)
            info = describe_status(504, self.provider_name)
            raise CommunicationError(info["message"], title=info["title"], status_code=504)
        except aiohttp.ClientError as e:
            logger.error(
                "request_error",
                provider=self.provider_name,
                endpoint=endpoint,
                error=str(e),
                traceback=traceback.format_exc(),
            )
            raise CommunicationError(
                f"Erro de conexão com {self.provider_name}: {str(e)}",
                title="Erro de Conexão",
                details=str(e),
            )

        if status == 401 and authenticated and retry_auth:
            self.token = None
            token_cache.pop(self.cache_key, None)
            return await self._request(
                method, endpoint, data, params, headers, authenticated, False
            )

        try:
            response_json = json.loads(response_text) if response_text else None
        except json.JSONDecodeError:
            response_json = {"message": response_text}

        return PartnerResponse(status=status, data=response_json, text=response_text)

    def raise_for_status(self, response: PartnerResponse) -> PartnerResponse:
        """Converte respostas não-2xx em CommunicationError com a mensagem padrão do status"""
        if not response.ok:
            info = describe_status(response.status, self.provider_name, response.text)
            raise CommunicationError(
                info["message"],
                title=info["title"],
                details=info["details"],
                status_code=502 if response.status >= 500 else response.status,
            )
        return response
