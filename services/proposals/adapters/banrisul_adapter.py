import re
from typing import Any, Dict, List, Optional
from models.digitization import DigitizationRequest, FormalizationLink, ProposalStatusUpdate
from models.simulation import CreditCondition, Expense, SimulationRequest
from utils.cpf import clean_cpf
from .base import BankAdapter, map_partner_status, to_float, to_int

DEFAULT_TERM = "096"


def only_digits(value: Any) -> str:
    return re.sub(r"\D", "", str(value or ""))


class BanrisulAdapter(BankAdapter):
    """Formato da integração corban da Bem Promotora"""

    @property
    def bank_name(self) -> str:
        return "Banrisul"

    def build_simulation_payload(
        self, request: SimulationRequest, covenant: Optional[str] = None
    ) -> Dict[str, Any]:
        term = DEFAULT_TERM
        if request.installment_quantity:
            term = str(request.installment_quantity).zfill(3)

        return {
            "cpf": clean_cpf(request.cpf),
            "dataNascimento": request.birth_date,
            "conveniada": covenant or "",
            "contratosRefinanciamento": [
                {
                    "contrato": only_digits(contract.contract_number),
                    "dataContrato": (contract.contract_date or "")[:10],
                }
                for contract in request.contracts
            ],
            "prestacao": request.installment_amount or request.current_installment_total,
            "prazo": term,
            "retornarSomenteOperacoesViaveis": True,
        }

    def parse_conditions(
        self, data: Any, request: SimulationRequest
    ) -> List[CreditCondition]:
        conditions = []
        for item in (data or {}).get("retorno") or []:
            expenses = [
                Expense(
                    code=str(seguro.get("codigo", "")),
                    description=seguro.get("descricao", ""),
                    amount=to_float(seguro.get("valor")),
                    exempt=not seguro.get("contratado", False),
                    type_description="Seguro",
                    raw=seguro,
                )
                for seguro in item.get("seguros") or []
            ]
            conditions.append(
                CreditCondition(
                    covenant_code=str(item.get("conveniada", "")),
                    covenant_description=item.get("conveniadaDescricao", "INSS"),
                    product_code=str(item.get("plano", "")),
                    product_description=item.get("descricaoPlano", ""),
                    client_amount=to_float(item.get("valorAF")),
                    requested_amount=to_float(item.get("valorFinanciado")),
                    installment_amount=to_float(item.get("valorParcela")),
                    installment_quantity=to_int(item.get("prazo")),
                    interest_rate=to_float(item.get("taxa")),
                    total_amount=to_float(item.get("valorTotal")),
                    expenses=expenses,
                    raw=item,
                )
            )
        return conditions

    def build_proposal_payload(self, request: DigitizationRequest) -> Dict[str, Any]:
        personal = request.personal
        address = request.address
        bank = request.bank_data
        condition = request.credit_condition

        return {
            "cpf": clean_cpf(personal.cpf),
            "nome": personal.name,
            "dataNascimento": personal.birth_date,
            "nomeMae": personal.mother_name,
            "sexo": personal.gender,
            "estadoCivil": personal.marital_status,
            "email": personal.email,
            "dddCelular": personal.phone_area_code,
            "celular": personal.phone_number,
            "documento": {
                "tipo": personal.document.type,
                "numero": personal.document.number,
                "uf": personal.document.issuing_state,
                "orgaoEmissor": personal.document.issuing_authority,
                "dataEmissao": personal.document.issue_date,
            },
            "endereco": {
                "logradouro": address.street,
                "numero": address.number,
                "complemento": address.complement,
                "bairro": address.neighborhood,
                "cidade": address.city,
                "uf": address.state,
                "cep": only_digits(address.zip_code),
            },
            "dadosBancarios": {
                "banco": only_digits(bank.bank_code),
                "agencia": only_digits(bank.agency),
                "conta": only_digits(bank.account),
                "digitoConta": bank.account_digit,
                "tipoConta": bank.account_type,
            },
            "matricula": request.enrollment,
            "ufBeneficio": request.benefit_state or address.state,
            "conveniada": condition.covenant_code,
            "plano": condition.product_code,
            "prazo": str(condition.installment_quantity).zfill(3),
            "prestacao": condition.installment_amount,
            "contratosRefinanciamento": [only_digits(c) for c in request.contract_ids],
            "seguros": [
                {"codigo": expense.code, "contratado": not expense.exempt}
                for expense in condition.expenses
            ],
        }

    def parse_proposal_number(self, data: Any) -> str:
        retorno = (data or {}).get("retorno") or {}
        return str(retorno.get("proposta") or retorno.get("numeroProposta") or "")

    def parse_formalization_link(self, data: Any) -> FormalizationLink:
        retorno = (data or {}).get("retorno") or {}
        url = retorno.get("link") or retorno.get("url")
        # a Bem Promotora só devolve o link quando ele já pode ser usado
        return FormalizationLink(url=url or None, status="ACTIVE" if url else None)

    def parse_proposal_status(self, data: Any) -> ProposalStatusUpdate:
        retorno = (data or {}).get("retorno") or {}
        return ProposalStatusUpdate(
            status=map_partner_status(retorno.get("situacao")),
            formalization_link=retorno.get("linkFormalizacao") or None,
            raw=retorno,
        )

    def extract_errors(self, data: Any) -> List[str]:
        if not isinstance(data, dict):
            return [str(data)] if data else []
        messages = [
            erro.get("mensagem", "") if isinstance(erro, dict) else str(erro)
            for erro in data.get("erros") or []
        ]
        if not messages and data.get("erro"):
            messages.append(data["erro"])
        return messages

    def has_field_errors(self, data: Any) -> bool:
        if not isinstance(data, dict):
            return False
        return any(
            isinstance(erro, dict) and erro.get("campo")
            for erro in data.get("erros") or []
        )
