"""Income tax estimation endpoint."""

from __future__ import annotations

from fastapi import APIRouter

from invest_ledger.tax import calculate_income_tax
from invest_tracker.schemas import BracketTaxSchema, TaxIncomeRequest, TaxResultSchema

router = APIRouter()


@router.post("/income", response_model=TaxResultSchema)
async def post_income_tax(payload: TaxIncomeRequest) -> TaxResultSchema:
    result = calculate_income_tax(payload.net_income)
    effective = result.total_tax / payload.net_income if payload.net_income > 0 else 0.0
    return TaxResultSchema(
        total_tax=result.total_tax,
        marginal_rate=result.marginal_rate,
        effective_rate=effective,
        brackets=[BracketTaxSchema(rate=b.rate, amount=b.amount, tax=b.tax) for b in result.brackets],
    )


__all__ = ["router"]
