from dataclasses import dataclass
from typing import Optional


@dataclass
class ContactMessage:
    """A message left through the public contact form. Append-only."""

    name: str
    email: str
    message: str
    subject: Optional[str] = None
    created_at: str = ""  # ISO 8601, set by store on insert
    id: Optional[int] = None
