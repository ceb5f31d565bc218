"""Ad-hoc categorization endpoint."""

from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ledgersync.api.deps import get_categorization_engine, get_current_owner_id
from ledgersync.api.envelope import to_response
from ledgersync.categorization import CategorizationEngine, extract_merchant_name
from ledgersync.core.result import ServiceResult
from ledgersync.schemas.classification import CategorizeRequest, ClassificationResponse

router = APIRouter(prefix="/categorize", tags=["categorization"])


@router.post("", dependencies=[Depends(get_current_owner_id)])
async def categorize(
    request: CategorizeRequest,
    engine: Annotated[CategorizationEngine, Depends(get_categorization_engine)],
) -> JSONResponse:
    """Classify a description/amount and extract the merchant name."""
    merchants = engine.catalog.merchants
    merchant = extract_merchant_name(request.description, request.payee_note, merchants)
    hint = request.merchant_hint or (None if merchant == merchants.sentinel else merchant)
    text = f"{request.description} {request.payee_note or ''}".strip()

    result = engine.classify(text, request.amount, merchant_hint=hint)
    rule = engine.catalog.get(result.category_id)

    response = ClassificationResponse(
        category_id=result.category_id,
        category_name=rule.name if rule else result.category_id,
        direction=result.direction,
        confidence=result.confidence,
        reasons=list(result.reasons),
        is_fallback=result.is_fallback,
        needs_review=result.needs_review,
        merchant_name=merchant,
    )
    return to_response(ServiceResult.success(response))
