from pydantic import BaseModel
from typing import Any, Dict, List, Optional
from models.contract import Contract
from utils.cpf import clean_cpf


def _to_float(value: Any) -> float:
    if value is None or value == "":
        return 0.0
    if isinstance(value, str):
        # valores da API chegam como "1.234,56" ou "1234.56"
        if "," in value:
            value = value.replace(".", "").replace(",", ".")
    try:
        return float(value)
    except (TypeError, ValueError):
        return 0.0


def _to_int(value: Any) -> Optional[int]:
    try:
        return int(str(value).strip())
    except (TypeError, ValueError):
        return None


class Beneficiary(BaseModel):
    """Dados do titular do benefício retornados pela consulta MULTI CORBAN"""

    name: str
    cpf: str
    birth_date: str = ""
    benefit_number: str = ""
    mother_name: str = ""
    rg: str = ""
    gender: str = ""
    marital_status: str = ""
    phone: str = ""
    email: str = ""
    street: str = ""
    number: str = ""
    complement: str = ""
    neighborhood: str = ""
    city: str = ""
    state: str = ""
    benefit_state: str = ""
    zip_code: str = ""
    issuing_authority: str = ""
    rg_issue_date: str = ""
    benefit_amount: float = 0.0
    payment_bank: str = ""
    payment_agency: str = ""
    payment_account: str = ""

    @classmethod
    def from_provider(cls, data: Dict[str, Any]) -> "Beneficiary":
        beneficiario = data.get("Beneficiario") or {}
        resumo = data.get("ResumoFinanceiro") or {}
        bancarios = data.get("DadosBancarios") or {}

        return cls(
            name=beneficiario.get("Nome") or "",
            cpf=clean_cpf(beneficiario.get("CPF") or ""),
            birth_date=beneficiario.get("DataNascimento") or "",
            benefit_number=str(beneficiario.get("Beneficio") or ""),
            mother_name=beneficiario.get("NomeMae") or "",
            rg=beneficiario.get("RG") or beneficiario.get("Rg") or "",
            gender=beneficiario.get("Sexo") or "",
            marital_status=beneficiario.get("EstadoCivil") or "",
            phone=beneficiario.get("Telefone") or "",
            email=beneficiario.get("Email") or "",
            street=beneficiario.get("Logradouro") or beneficiario.get("Endereco") or "",
            number=beneficiario.get("Numero") or "",
            complement=beneficiario.get("Complemento") or "",
            neighborhood=beneficiario.get("Bairro") or "",
            city=beneficiario.get("Cidade") or "",
            state=beneficiario.get("UF") or "",
            benefit_state=beneficiario.get("UFBeneficio") or beneficiario.get("UF") or "",
            zip_code=beneficiario.get("CEP") or "",
            issuing_authority=beneficiario.get("OrgaoExpedidor") or "",
            rg_issue_date=beneficiario.get("DataEmissaoRG") or "",
            benefit_amount=_to_float(resumo.get("ValorBeneficio")),
            payment_bank=str(bancarios.get("Banco") or ""),
            payment_agency=str(bancarios.get("AgenciaPagto") or ""),
            payment_account=str(bancarios.get("ContaPagto") or ""),
        )


def contracts_from_benefit(data: Dict[str, Any]) -> List[Contract]:
    """Converte a lista Emprestimos de um benefício em contratos normalizados"""
    enrollment = str((data.get("Beneficiario") or {}).get("Beneficio") or "")
    contracts = []

    for loan in data.get("Emprestimos") or []:
        contract_number = str(loan.get("Contrato") or "").strip()
        if not contract_number:
            continue

        contracts.append(
            Contract(
                contract_number=contract_number,
                bank_code=str(loan.get("Banco") or "").zfill(3),
                bank_name=loan.get("NomeBanco") or "",
                enrollment=enrollment,
                installment_amount=_to_float(loan.get("ValorParcela")),
                outstanding_balance=_to_float(
                    loan.get("Quitacao") or loan.get("SaldoDevedor")
                ),
                term=_to_int(loan.get("Prazo")),
                remaining_installments=_to_int(loan.get("ParcelasRestantes")),
                contract_date=loan.get("DataAverbacao") or loan.get("InicioDesconto"),
            )
        )

    return contracts


def parse_benefits(payload: Any) -> List[Dict[str, Any]]:
    """A API devolve uma lista de benefícios, mas algumas rotas retornam um único objeto"""
    if isinstance(payload, list):
        return [item for item in payload if isinstance(item, dict)]
    if isinstance(payload, dict) and "Beneficiario" in payload:
        return [payload]
    return []
