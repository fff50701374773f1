import asyncio
from datetime import datetime, timedelta

import pytest

from exceptions import CommunicationError, DuplicateProposalError, NotFoundError
from models.digitization import DigitizationRecord, DigitizationStatus, ProposalStatusUpdate
from services.digitizations.service import bucket_start
from services.proposals.banks.c6_bank import C6Bank
from tests.fakes.fake_bank import FakePartnerBank
from tests.fakes.fake_clients import ScriptedClient, response


def make_record(proposal_number, **kwargs):
    data = {
        "bank": "fake-bank",
        "proposal_number": proposal_number,
        "cpf": "529.982.247-25",
        "client_name": "Maria da Silva",
        "operator_id": "operador-1",
        "selected_contracts": ["123456"],
    }
    data.update(kwargs)
    return DigitizationRecord(**data)


def test_create_stores_clean_cpf(recorder):
    record = recorder.create(make_record("PROP-1"))

    assert record.id
    assert record.cpf == "52998224725"
    assert recorder.get("PROP-1").cpf == "52998224725"


def test_proposal_number_is_unique(recorder):
    recorder.create(make_record("PROP-1"))

    with pytest.raises(DuplicateProposalError) as exc:
        recorder.create(make_record("PROP-1", client_name="Outro Cliente"))

    assert exc.value.status_code == 409
    assert recorder.get("PROP-1").client_name == "Maria da Silva"


def test_unknown_proposal(recorder):
    with pytest.raises(NotFoundError):
        recorder.get("NAO-EXISTE")
    with pytest.raises(NotFoundError):
        recorder.update_status("NAO-EXISTE", DigitizationStatus.APPROVED)


def test_update_status_and_link(recorder):
    recorder.create(make_record("PROP-1"))

    record = recorder.update_status(
        "PROP-1", DigitizationStatus.APPROVED, formalization_link="https://link/1"
    )

    assert record.status == DigitizationStatus.APPROVED
    assert record.formalization_link == "https://link/1"
    assert record.is_terminal


def test_list_search_and_filters(recorder):
    recorder.create(make_record("PROP-1"))
    recorder.create(
        make_record("PROP-2", client_name="João Souza", cpf="11144477735", operator_id="operador-2")
    )
    recorder.create(make_record("7770001", bank="c6-bank"))
    recorder.update_status("PROP-2", DigitizationStatus.REJECTED)

    assert [r.proposal_number for r in recorder.list(bank="fake-bank", search="maria")] == ["PROP-1"]
    assert [r.proposal_number for r in recorder.list(search="111.444")] == ["PROP-2"]
    assert [r.proposal_number for r in recorder.list(search="7770001")] == ["7770001"]
    assert [r.proposal_number for r in recorder.list(status="rejected")] == ["PROP-2"]
    assert len(recorder.list(operator_id="operador-1")) == 2
    assert len(recorder.list(status="all")) == 3


def test_list_is_newest_first_and_respects_date_bucket(recorder, mongo_db):
    recorder.create(make_record("PROP-OLD"))
    recorder.create(make_record("PROP-NEW"))
    mongo_db["digitizations"].update_one(
        {"proposal_number": "PROP-OLD"},
        {"$set": {"created_at": datetime.utcnow() - timedelta(days=10)}},
    )

    assert [r.proposal_number for r in recorder.list()] == ["PROP-NEW", "PROP-OLD"]
    assert [r.proposal_number for r in recorder.list(date_bucket="week")] == ["PROP-NEW"]
    assert len(recorder.list(date_bucket="month")) == 2


def test_today_bucket_starts_at_sao_paulo_midnight():
    # 02:00 UTC ainda é o dia anterior em São Paulo (UTC-3)
    now = datetime(2024, 5, 10, 2, 0)

    assert bucket_start("today", now) == datetime(2024, 5, 9, 3, 0)
    assert bucket_start("week", now) == now - timedelta(days=7)
    assert bucket_start("all", now) is None


def test_refresh_all_counts_changes_and_errors(recorder):
    recorder.create(make_record("PROP-1"))
    recorder.create(make_record("PROP-2"))
    recorder.create(make_record("PROP-3"))
    recorder.create(make_record("PROP-4"))
    recorder.create(make_record("PROP-5", bank="banco-removido"))
    recorder.create(make_record("PROP-6"))
    recorder.update_status("PROP-6", DigitizationStatus.APPROVED)

    bank = FakePartnerBank(
        statuses={
            "PROP-1": ProposalStatusUpdate(
                status=DigitizationStatus.APPROVED, formalization_link="https://link/1"
            ),
            "PROP-2": ProposalStatusUpdate(status=DigitizationStatus.PENDING),
            "PROP-3": CommunicationError("Timeout"),
        }
    )

    summary = asyncio.run(recorder.refresh_all({"fake-bank": bank}))

    # PROP-4 não existe no parceiro, PROP-5 não tem banco e PROP-6 já está finalizada
    assert summary == {"checked": 4, "updated_count": 1, "errors": 3}
    assert "PROP-6" not in bank.status_calls
    assert recorder.get("PROP-1").formalization_link == "https://link/1"
    assert recorder.get("PROP-2").status == DigitizationStatus.PENDING


def test_refresh_all_filters_by_bank(recorder):
    recorder.create(make_record("PROP-1"))
    recorder.create(make_record("PROP-2", bank="c6-bank"))
    bank = FakePartnerBank(
        statuses={"PROP-1": ProposalStatusUpdate(status=DigitizationStatus.IN_ANALYSIS)}
    )

    summary = asyncio.run(recorder.refresh_all({"fake-bank": bank}, bank="fake-bank"))

    assert summary == {"checked": 1, "updated_count": 1, "errors": 0}
    assert recorder.get("PROP-1").status == DigitizationStatus.IN_ANALYSIS


def test_refresh_all_keeps_status_on_unknown_partner_situation(recorder):
    recorder.create(make_record("C6-1", bank="c6-bank"))
    recorder.update_status("C6-1", DigitizationStatus.IN_ANALYSIS)
    situation = {"status": "AGUARDANDO_ASSINATURA", "formalization_url": "https://c6.example/f/1"}
    bank = C6Bank(client=ScriptedClient(status=response(200, situation)))

    summary = asyncio.run(recorder.refresh_all({"c6-bank": bank}))

    # apenas o link muda, a situação desconhecida não rebaixa o status
    assert summary == {"checked": 1, "updated_count": 1, "errors": 0}
    record = recorder.get("C6-1")
    assert record.status == DigitizationStatus.IN_ANALYSIS
    assert record.formalization_link == "https://c6.example/f/1"


def test_refresh_all_ignores_unknown_situation_without_changes(recorder):
    recorder.create(make_record("C6-2", bank="c6-bank"))
    recorder.update_status("C6-2", DigitizationStatus.IN_ANALYSIS)
    bank = C6Bank(client=ScriptedClient(status=response(200, {"status": ""})))

    summary = asyncio.run(recorder.refresh_all({"c6-bank": bank}))

    assert summary == {"checked": 1, "updated_count": 0, "errors": 0}
    assert recorder.get("C6-2").status == DigitizationStatus.IN_ANALYSIS


def test_update_status_respects_bank(recorder):
    recorder.create(make_record("PROP-1"))

    with pytest.raises(NotFoundError):
        recorder.update_status("PROP-1", DigitizationStatus.APPROVED, bank="c6-bank")

    assert recorder.get("PROP-1").status == DigitizationStatus.PENDING
    updated = recorder.update_status("PROP-1", DigitizationStatus.APPROVED, bank="fake-bank")
    assert updated.status == DigitizationStatus.APPROVED
