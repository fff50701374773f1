from typing import Any, Dict, List
from models.digitization import DigitizationRequest, FormalizationLink, ProposalStatusUpdate
from models.simulation import CreditCondition, Expense, SimulationMode, SimulationRequest
from utils.cpf import clean_cpf
from .base import BankAdapter, map_partner_status, to_float, to_int

DEFAULT_TERMS = [84, 96]


class SafraAdapter(BankAdapter):
    @property
    def bank_name(self) -> str:
        return "Safra"

    def build_simulation_payload(
        self, request: SimulationRequest, covenant_id: int = 0
    ) -> Dict[str, Any]:
        if request.mode == SimulationMode.BY_TERM:
            terms = [request.installment_quantity]
            installment = 0
        else:
            terms = DEFAULT_TERMS
            installment = request.installment_amount

        return {
            "idConvenio": covenant_id,
            "cpf": int(clean_cpf(request.cpf)),
            "matricula": request.enrollment,
            "isCotacao": True,
            "refins": [
                {"idContrato": int("".join(c for c in contract.contract_number if c.isdigit()) or 0)}
                for contract in request.contracts
            ],
            "prazos": terms,
            "dtNascimento": request.birth_date,
            "comSeguro": request.with_insurance,
            "valorParcela": installment,
            "valorTroco": 0,
            "idServicos": [],
        }

    def parse_conditions(
        self, data: Any, request: SimulationRequest
    ) -> List[CreditCondition]:
        conditions = []
        for item in (data or {}).get("simulacoes") or []:
            expenses = [
                Expense(
                    code=str(seguro.get("idSeguro", "")),
                    description=seguro.get("descricao", ""),
                    amount=to_float(seguro.get("valor")),
                    exempt=not seguro.get("selecionado", False),
                    type_description="Seguro",
                    raw=seguro,
                )
                for seguro in item.get("seguros") or []
            ]
            conditions.append(
                CreditCondition(
                    covenant_code=str(item.get("idConvenio", "")),
                    covenant_description="INSS",
                    product_code=str(item.get("idTabelaJuros", "")),
                    product_description=item.get("descricaoTabela", ""),
                    client_amount=to_float(item.get("valorTroco")),
                    requested_amount=to_float(item.get("valorPrincipal")),
                    installment_amount=to_float(item.get("valorParcela")),
                    installment_quantity=to_int(item.get("prazo")),
                    interest_rate=to_float(item.get("taxaJuros")),
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
        charged = condition.charged_expenses

        return {
            "idConvenio": to_int(condition.covenant_code),
            "idTabelaJuros": to_int(condition.product_code),
            "prazo": condition.installment_quantity,
            "valorParcela": condition.installment_amount,
            "valorPrincipal": condition.requested_amount,
            "idSeguro": to_int(charged[0].code) if charged else 0,
            "refins": [
                {"idContrato": to_int("".join(c for c in number if c.isdigit()))}
                for number in request.contract_ids
            ],
            "cliente": {
                "cpf": clean_cpf(personal.cpf),
                "nome": personal.name,
                "dtNascimento": personal.birth_date,
                "nomeMae": personal.mother_name,
                "sexo": personal.gender,
                "estadoCivil": personal.marital_status,
                "email": personal.email,
                "ddd": personal.phone_area_code,
                "telefone": personal.phone_number,
                "matricula": request.enrollment,
                "ufBeneficio": request.benefit_state or address.state,
                "documento": {
                    "tipo": personal.document.type,
                    "numero": personal.document.number,
                    "uf": personal.document.issuing_state,
                    "orgaoEmissor": personal.document.issuing_authority,
                    "dtEmissao": personal.document.issue_date,
                },
                "endereco": {
                    "logradouro": address.street,
                    "numero": address.number,
                    "complemento": address.complement,
                    "bairro": address.neighborhood,
                    "cidade": address.city,
                    "uf": address.state,
                    "cep": "".join(c for c in address.zip_code if c.isdigit()),
                },
                "contaBancaria": {
                    "banco": bank.bank_code,
                    "agencia": bank.agency,
                    "conta": bank.account,
                    "digito": bank.account_digit,
                    "tipo": bank.account_type,
                },
            },
        }

    def parse_proposal_number(self, data: Any) -> str:
        data = data or {}
        return str(data.get("idProposta") or data.get("numeroProposta") or "")

    def parse_formalization_link(self, data: Any) -> FormalizationLink:
        data = data or {}
        url = data.get("linkFormalizacao") or data.get("url")
        status = data.get("status") or ("ACTIVE" if url else None)
        return FormalizationLink(url=url or None, status=status)

    def parse_proposal_status(self, data: Any) -> ProposalStatusUpdate:
        data = data or {}
        return ProposalStatusUpdate(
            status=map_partner_status(data.get("situacao") or data.get("status")),
            formalization_link=data.get("linkFormalizacao") or None,
            raw=data,
        )

    def extract_errors(self, data: Any) -> List[str]:
        if not isinstance(data, dict):
            return [str(data)] if data else []
        messages = [
            c.get("mensagem", "") if isinstance(c, dict) else str(c)
            for c in data.get("criticas") or []
        ]
        if not messages and data.get("error"):
            messages.append(str(data["error"]))
        return messages

    def has_field_errors(self, data: Any) -> bool:
        return isinstance(data, dict) and bool(data.get("criticas"))
