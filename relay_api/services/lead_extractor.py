import re
from dataclasses import dataclass
from typing import Optional

EMAIL_PATTERN = re.compile(r"[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}")
# Australian mobile formats (04xx xxx xxx, +61 4xx ...) plus a bare 10-11 digit fallback
PHONE_PATTERN = re.compile(r"(?:\+?61|0)[\s.-]?4[\s.-]?\d{2}[\s.-]?\d{3}[\s.-]?\d{3}|\d{10,11}")


@dataclass(frozen=True)
class LeadInfo:
    email: Optional[str] = None
    phone: Optional[str] = None

    def as_dict(self) -> dict:
        return {"email": self.email, "phone": self.phone}


def extract_lead_info(text: Optional[str]) -> Optional[LeadInfo]:
    """Return the first email and first phone number found, or None."""
    if not text:
        return None
    email = EMAIL_PATTERN.search(text)
    phone = PHONE_PATTERN.search(text)
    if not email and not phone:
        return None
    return LeadInfo(
        email=email.group(0) if email else None,
        phone=phone.group(0) if phone else None,
    )
