"""Email delivery status routes."""

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from charter_api.core.deps import get_db
from charter_api.schemas.email import EmailDeliveryStats, EmailDeliveryStatusRead
from charter_api.services import email_delivery_service

router = APIRouter()


@router.get("/stats", response_model=EmailDeliveryStats)
def get_delivery_stats(
    days: int = Query(30, ge=1, le=365),
    db: Session = Depends(get_db),
):
    """Delivery and bounce rates over the last ``days`` days."""
    return email_delivery_service.get_email_delivery_stats(db, days=days)


@router.get("/{message_id}", response_model=EmailDeliveryStatusRead)
def get_delivery_status(message_id: str, db: Session = Depends(get_db)):
    status = email_delivery_service.get_email_delivery_status(db, message_id)
    if not status:
        raise HTTPException(status_code=404, detail="Email delivery not found")
    return status
