"""API routes creating hosted checkout sessions."""
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from ..reconciliation import CheckoutService, DependencyError
from ..schemas.payments import AppointmentCheckoutRequest, CheckoutResponse, RentalCheckoutRequest
from ..services.reconciliation import get_checkout_service

router = APIRouter(prefix="/api/checkout", tags=["checkout"])


@router.post("/appointments", response_model=CheckoutResponse)
def create_appointment_checkout(
    payload: AppointmentCheckoutRequest,
    service: CheckoutService = Depends(get_checkout_service),
) -> CheckoutResponse:
    try:
        link = service.create_appointment_checkout(payload.appointment_id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except DependencyError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return CheckoutResponse.from_link(link)


@router.post("/rentals", response_model=CheckoutResponse)
def create_rental_checkout(
    payload: RentalCheckoutRequest,
    service: CheckoutService = Depends(get_checkout_service),
) -> CheckoutResponse:
    if not payload.listing_data:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Listing data is required")
    try:
        link = service.create_rental_checkout(payload.listing_id, payload.listing_data)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    except DependencyError as exc:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(exc)) from exc
    return CheckoutResponse.from_link(link)
