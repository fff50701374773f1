from typing import Optional
from exceptions import SelectionError
from models.simulation import CreditCondition


def apply_insurance_selection(
    condition: CreditCondition, insurance_code: Optional[str] = None
) -> CreditCondition:
    """Retorna uma cópia da condição em que apenas o seguro escolhido deixa de ser isento.

    Sem seguro escolhido, todos os itens ficam isentos.
    """
    if insurance_code is not None and condition.expense(insurance_code) is None:
        raise SelectionError(
            f"Seguro {insurance_code} não pertence à condição selecionada",
            details="Escolha um dos seguros listados na condição ou nenhum",
        )

    expenses = [
        expense.model_copy(
            update={"exempt": insurance_code is None or expense.code != insurance_code}
        )
        for expense in condition.expenses
    ]
    return condition.model_copy(update={"expenses": expenses})
