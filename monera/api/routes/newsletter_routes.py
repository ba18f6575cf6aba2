"""
Newsletter Routes

POST /newsletter - Subscribe an e-mail address (idempotent)
"""

from fastapi import APIRouter, Request

from monera.core.security import api_rate_limiter
from monera.db.repository import db
from monera.api.helpers import normalize_email
from monera.schemas.schemas import NewsletterSubscribe, MessageResponse

router = APIRouter(prefix="/newsletter", tags=["Newsletter"])


@router.post("", response_model=MessageResponse)
async def subscribe(payload: NewsletterSubscribe, request: Request):
    api_rate_limiter.enforce(request, "Too many requests. Please try again later.")
    email = normalize_email(payload.email)
    db.newsletter_subscriber.upsert({"email": email}, {}, {})
    return MessageResponse(message="Subscribed to the newsletter")
