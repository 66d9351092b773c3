"""Quote pricing endpoint"""
import logging
from fastapi import APIRouter, Depends, HTTPException

from app.api.deps import PortalLoader, check_not_found, get_portal_loader, get_quote_service
from app.core.errors import MissingGlobalModifierSetError, NoRateAvailableError, RateLookupError
from app.schemas.quote import PricedVehicle, QuoteRequest, QuoteResponse
from app.services.quote_service import QuoteService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/quotes", tags=["quotes"])


@router.post("/price", response_model=QuoteResponse)
async def price_quote(
    req: QuoteRequest,
    portals: PortalLoader = Depends(get_portal_loader),
    service: QuoteService = Depends(get_quote_service),
):
    tenant = await portals.get(req.portal_id)
    check_not_found(tenant, "Portal", req.portal_id)

    try:
        result = await service.price(
            req.vehicles,
            req.miles,
            req.origin,
            req.destination,
            tenant,
            req.commission,
        )
    except MissingGlobalModifierSetError as e:
        raise HTTPException(status_code=503, detail=str(e))
    except RateLookupError as e:
        raise HTTPException(status_code=502, detail=str(e))
    except NoRateAvailableError as e:
        raise HTTPException(status_code=422, detail=str(e))

    return QuoteResponse(
        portal_id=tenant.id,
        miles=req.miles,
        vehicles=[
            PricedVehicle(vehicle=vehicle, pricing=pricing)
            for vehicle, pricing in zip(result.vehicles, result.vehicle_pricings)
        ],
        total_pricing=result.quote_total_pricing,
    )
