from typing import Any, Dict, List
from models.digitization import DigitizationRequest, FormalizationLink, ProposalStatusUpdate
from models.simulation import CreditCondition, Expense, SimulationMode, SimulationRequest
from utils.cpf import clean_cpf
from .base import BankAdapter, map_partner_status, to_float, to_int


EXEMPT_TRUE_VALUES = {"S", "SIM", "Y", "TRUE", "1"}


class C6BankAdapter(BankAdapter):
    def __init__(self, promoter_code: str = ""):
        self.promoter_code = promoter_code

    @property
    def bank_name(self) -> str:
        return "C6 Bank"

    def build_simulation_payload(self, request: SimulationRequest) -> Dict[str, Any]:
        if request.mode == SimulationMode.BY_INSTALLMENT_AMOUNT:
            simulation_type = "POR_VALOR_PARCELA"
        else:
            simulation_type = "POR_QUANTIDADE_PARCELAS"

        payload = {
            "tax_identifier": clean_cpf(request.cpf),
            "birth_date": request.birth_date,
            "simulation_type": simulation_type,
            "installment_quantity": request.installment_quantity,
            "installment_amount": (
                request.installment_amount or request.current_installment_total
            ),
            "enrollment": request.enrollment,
            "insurance": request.with_insurance,
            "refinancing_contracts": [
                {
                    "contract_number": contract.contract_number,
                    "installment_amount": contract.installment_amount,
                }
                for contract in request.contracts
            ],
        }
        if self.promoter_code:
            payload["promoter_code"] = self.promoter_code
        return payload

    def _parse_expense(self, item: Dict[str, Any]) -> Expense:
        exempt = item.get("exempt", True)
        if isinstance(exempt, str):
            exempt = exempt.strip().upper() in EXEMPT_TRUE_VALUES
        return Expense(
            code=str(item.get("code", "")),
            description=item.get("description", ""),
            amount=to_float(item.get("amount")),
            exempt=bool(exempt),
            type_description=item.get("description_type", ""),
            raw=item,
        )

    def parse_conditions(
        self, data: Any, request: SimulationRequest
    ) -> List[CreditCondition]:
        conditions = []
        for item in (data or {}).get("credit_conditions") or []:
            covenant = item.get("covenant") or {}
            product = item.get("product") or {}
            conditions.append(
                CreditCondition(
                    covenant_code=str(covenant.get("code", "")),
                    covenant_description=covenant.get("description", ""),
                    product_code=str(product.get("code", "")),
                    product_description=product.get("description", ""),
                    client_amount=to_float(item.get("client_amount")),
                    requested_amount=to_float(item.get("requested_amount")),
                    installment_amount=to_float(item.get("installment_amount")),
                    installment_quantity=to_int(item.get("installment_quantity")),
                    interest_rate=to_float(item.get("interest_rate")),
                    total_amount=to_float(item.get("total_amount")),
                    expenses=[
                        self._parse_expense(e) for e in item.get("expenses") or []
                    ],
                    raw=item,
                )
            )
        return conditions

    def build_proposal_payload(self, request: DigitizationRequest) -> Dict[str, Any]:
        personal = request.personal
        bank = request.bank_data
        address = request.address
        condition = request.credit_condition

        account = "".join(c for c in bank.account if c.isalnum())
        account_digit = bank.account_digit
        if not account_digit and len(account) > 1:
            account, account_digit = account[:-1], account[-1]

        credit_condition = dict(condition.raw)
        credit_condition["expenses"] = [
            {**expense.raw, "code": expense.code, "exempt": "S" if expense.exempt else "N"}
            for expense in condition.expenses
        ]

        payload = {
            "client": {
                "tax_identifier": clean_cpf(personal.cpf),
                "name": personal.name,
                "document_type": personal.document.type,
                "document_number": personal.document.number,
                "document_federation_unit": personal.document.issuing_state,
                "issuance_date": personal.document.issue_date,
                "government_agency_which_has_issued_the_document": personal.document.issuing_authority,
                "marital_status": personal.marital_status,
                "spouses_name": personal.spouse_name,
                "politically_exposed_person": "Sim" if personal.politically_exposed else "Nao",
                "birth_date": personal.birth_date,
                "gender": personal.gender,
                "income_amount": personal.income_amount,
                "mother_name": personal.mother_name,
                "email": personal.email,
                "mobile_phone_area_code": personal.phone_area_code,
                "mobile_phone_number": personal.phone_number,
                "bank_data": {
                    "bank_code": "".join(c for c in bank.bank_code if c.isdigit()),
                    "agency_number": "".join(c for c in bank.agency if c.isdigit()),
                    "agency_digit": bank.agency_digit,
                    "account_type": bank.account_type,
                    "account_number": account,
                    "account_digit": account_digit,
                },
                "benefit_data": {
                    "receive_card_benefit": "Sim" if request.receives_benefit_card else "Nao",
                    "federation_unit": request.benefit_state or address.state,
                },
                "address": {
                    "street": address.street,
                    "number": address.number,
                    "neighborhood": address.neighborhood,
                    "city": address.city,
                    "federation_unit": address.state,
                    "zip_code": "".join(c for c in address.zip_code if c.isdigit()),
                },
                "professional_data": {"enrollment": request.enrollment},
            },
            "credit_condition": credit_condition,
            "refinancing_contracts": list(request.contract_ids),
        }
        if self.promoter_code:
            payload["promoter_code"] = self.promoter_code
        return payload

    def parse_proposal_number(self, data: Any) -> str:
        return str((data or {}).get("proposal_number") or "")

    def parse_formalization_link(self, data: Any) -> FormalizationLink:
        data = data or {}
        return FormalizationLink(url=data.get("url") or None, status=data.get("status"))

    def parse_proposal_status(self, data: Any) -> ProposalStatusUpdate:
        data = data or {}
        movements = data.get("movements") or []
        situation = data.get("status") or data.get("situation")
        if not situation and movements:
            situation = movements[-1].get("status")
        return ProposalStatusUpdate(
            status=map_partner_status(situation),
            formalization_link=data.get("formalization_url") or None,
            raw=data,
        )

    def extract_errors(self, data: Any) -> List[str]:
        if not isinstance(data, dict):
            return [str(data)] if data else []
        messages = []
        for detail in data.get("details") or []:
            if isinstance(detail, dict):
                field = detail.get("field")
                message = detail.get("message", "")
                messages.append(f"{field}: {message}" if field else message)
            else:
                messages.append(str(detail))
        if not messages and data.get("message"):
            messages.append(data["message"])
        if not messages and data.get("error"):
            messages.append(str(data["error"]))
        return messages

    def has_field_errors(self, data: Any) -> bool:
        if not isinstance(data, dict):
            return False
        return any(
            isinstance(detail, dict) and detail.get("field")
            for detail in data.get("details") or []
        )
