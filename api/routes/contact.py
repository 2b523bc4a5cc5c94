"""
api/routes/contact.py -- Public contact form endpoint.

  POST /api/contact -- append a message (201). Rate-limited per client IP.
"""

from fastapi import APIRouter, Request

from api.limiter import limiter
from api.models import ContactCreate, MessageResponse
from contact.models import ContactMessage
from contact.store import ContactStore
from core.config import get_settings

_settings = get_settings()

router = APIRouter()


@router.post("/contact", response_model=MessageResponse, status_code=201)
@limiter.limit(_settings.contact_rate_limit)
def submit_contact(request: Request, body: ContactCreate) -> MessageResponse:
    contact_store: ContactStore = request.app.state.contact_store
    contact_store.create_message(
        ContactMessage(name=body.name, email=body.email, subject=body.subject or None, message=body.message)
    )
    return MessageResponse(message="Message received.")
