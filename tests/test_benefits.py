import asyncio

import pytest
from structlog.testing import capture_logs

from apis.multicorban_api_client import MultiCorbanAPIClient
from apis.partner_api_client import PartnerResponse
from exceptions import InvalidInputError, NotFoundError
from models.benefit import Beneficiary, contracts_from_benefit, parse_benefits
from services.benefits.service import BenefitService
from services.consultations.service import ConsultationService
from tests.fakes.fake_clients import FakeMultiCorbanClient

BENEFIT = {
    "Beneficiario": {
        "Nome": "Maria da Silva",
        "CPF": "529.982.247-25",
        "DataNascimento": "1955-03-10",
        "Beneficio": "9988776655",
        "NomeMae": "Ana da Silva",
        "Sexo": "F",
        "UF": "SP",
        "CEP": "01001-000",
    },
    "ResumoFinanceiro": {"ValorBeneficio": "2.100,00"},
    "DadosBancarios": {"Banco": 104, "AgenciaPagto": "1234", "ContaPagto": "567890"},
    "Emprestimos": [
        {
            "Contrato": "123456",
            "Banco": "41",
            "NomeBanco": "BANRISUL",
            "ValorParcela": "310,50",
            "Quitacao": "9.800,00",
            "Prazo": "84",
            "ParcelasRestantes": "60",
            "DataAverbacao": "2023-04-15",
        },
        {"Contrato": "", "Banco": "626"},
    ],
}


@pytest.fixture
def consultations(mongo_db) -> ConsultationService:
    return ConsultationService(mongo_db)


def test_beneficiary_from_provider():
    beneficiary = Beneficiary.from_provider(BENEFIT)

    assert beneficiary.cpf == "52998224725"
    assert beneficiary.benefit_number == "9988776655"
    assert beneficiary.benefit_amount == 2100.0
    assert beneficiary.benefit_state == "SP"
    assert beneficiary.payment_bank == "104"


def test_contracts_skip_loans_without_number():
    contracts = contracts_from_benefit(BENEFIT)

    assert len(contracts) == 1
    contract = contracts[0]
    assert contract.bank_code == "041"
    assert contract.enrollment == "9988776655"
    assert contract.installment_amount == 310.50
    assert contract.outstanding_balance == 9800.0
    assert contract.remaining_installments == 60


def test_parse_benefits_accepts_single_object():
    assert parse_benefits(BENEFIT) == [BENEFIT]
    assert parse_benefits([BENEFIT, "lixo"]) == [BENEFIT]
    assert parse_benefits({"erro": "x"}) == []


def test_consult_by_cpf_records_consultation(consultations):
    client = FakeMultiCorbanClient([BENEFIT])
    service = BenefitService(client, consultations)

    results = asyncio.run(service.consult_by_cpf("529.982.247-25", "operador-1"))

    assert client.queries == ["52998224725"]
    assert client.closed
    assert results[0].beneficiary.name == "Maria da Silva"
    check = consultations.check("operador-1", cpf="52998224725")
    assert check.benefit_number == "9988776655"


def test_invalid_cpf_is_not_sent(consultations):
    client = FakeMultiCorbanClient([BENEFIT])
    service = BenefitService(client, consultations)

    with pytest.raises(InvalidInputError):
        asyncio.run(service.consult_by_cpf("123.456.789-00"))

    assert client.queries == []


def test_load_benefit_by_enrollment():
    service = BenefitService(FakeMultiCorbanClient([BENEFIT]))

    result = asyncio.run(service.load_benefit("52998224725", "9988776655"))
    assert result.beneficiary.benefit_number == "9988776655"

    with pytest.raises(NotFoundError):
        asyncio.run(service.load_benefit("52998224725", "0000000000"))


def test_consultation_history(consultations):
    service = BenefitService(FakeMultiCorbanClient([BENEFIT]), consultations)
    asyncio.run(service.consult_by_benefit("998.877.665-5", "operador-1"))

    history = consultations.list_by_operator("operador-1")

    assert len(history) == 1
    assert history[0].cpf == "52998224725"
    assert consultations.list_by_operator("operador-2") == []
    with pytest.raises(ValueError):
        consultations.check("operador-1")


def test_multicorban_log_masks_cpf(monkeypatch):
    monkeypatch.setenv("MULTICORBAN_API_KEY", "chave-teste")
    client = MultiCorbanAPIClient()

    async def fake_request(method, endpoint, data=None, **kwargs):
        return PartnerResponse(status=200, data=[BENEFIT])

    monkeypatch.setattr(client, "_request", fake_request)

    with capture_logs() as logs:
        result = asyncio.run(client.consult_cpf("52998224725"))

    assert result == [BENEFIT]
    entry = next(log for log in logs if log["event"] == "consult_cpf")
    assert entry["cpf"] == "***.982.247-**"
    assert "52998224725" not in str(logs)


def test_multicorban_uses_fixed_api_key(monkeypatch):
    monkeypatch.setenv("MULTICORBAN_API_KEY", "chave-teste")
    client = MultiCorbanAPIClient()

    assert asyncio.run(client.authenticate()) == "chave-teste"
    assert client._auth_headers() == {"Authorization": "chave-teste"}
