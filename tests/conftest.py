"""Fixtures compartilhadas: banco Mongo em memória, beneficiário e condições de exemplo."""

import mongomock
import pytest

from models.benefit import Beneficiary
from models.contract import Contract
from models.simulation import CreditCondition, Expense
from services.digitizations.service import DigitizationRecorder
from services.proposals.workflow import ProposalWorkflow
from tests.fakes.fake_bank import FakePartnerBank, RecordingSleep


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["consulta_inss_test"]


@pytest.fixture
def recorder(mongo_db) -> DigitizationRecorder:
    return DigitizationRecorder(mongo_db)


@pytest.fixture
def beneficiary() -> Beneficiary:
    return Beneficiary(
        name="Maria da Silva",
        cpf="52998224725",
        birth_date="1955-03-10",
        benefit_number="9988776655",
        mother_name="Ana da Silva",
        rg="123456789",
        gender="F",
        marital_status="Viuvo",
        phone="(11) 98765-4321",
        street="Rua das Flores",
        number="100",
        neighborhood="Centro",
        city="São Paulo",
        state="SP",
        benefit_state="SP",
        zip_code="01001-000",
        payment_bank="104",
        payment_agency="1234",
        payment_account="567890",
    )


@pytest.fixture
def contracts():
    return [
        Contract(
            contract_number="123456",
            bank_code="999",
            bank_name="Banco Fake",
            enrollment="9988776655",
            installment_amount=250.00,
        ),
        Contract(
            contract_number="789012",
            bank_code="999",
            bank_name="Banco Fake",
            enrollment="9988776655",
            installment_amount=200.00,
        ),
        Contract(
            contract_number="555000",
            bank_code="999",
            bank_name="Banco Fake",
            enrollment="1122334455",
            installment_amount=120.00,
        ),
        Contract(
            contract_number="626001",
            bank_code="626",
            bank_name="Banco C6 Consignado",
            enrollment="9988776655",
            installment_amount=90.00,
        ),
    ]


@pytest.fixture
def conditions():
    return [
        CreditCondition(
            product_code="P72",
            installment_amount=470.00,
            installment_quantity=72,
            client_amount=1800.00,
            requested_amount=15000.00,
        ),
        CreditCondition(
            product_code="P84",
            installment_amount=450.00,
            installment_quantity=84,
            client_amount=2500.00,
            requested_amount=18000.00,
            expenses=[
                Expense(
                    code="SEG1",
                    description="Seguro Prestamista",
                    amount=120.00,
                    exempt=False,
                    type_description="Seguro",
                ),
                Expense(code="TAC", description="Tarifa de cadastro", amount=0.0),
            ],
        ),
        CreditCondition(
            product_code="P96",
            installment_amount=430.00,
            installment_quantity=96,
            client_amount=3100.00,
            requested_amount=20000.00,
        ),
    ]


@pytest.fixture
def fake_bank(conditions) -> FakePartnerBank:
    return FakePartnerBank(conditions=conditions)


@pytest.fixture
def sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def workflow(fake_bank, recorder, beneficiary, contracts, sleep) -> ProposalWorkflow:
    return ProposalWorkflow.start(
        fake_bank,
        recorder,
        beneficiary,
        contracts,
        operator_id="operador-1",
        max_attempts=15,
        interval=20,
        sleep=sleep,
    )
