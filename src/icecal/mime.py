from __future__ import annotations

from email import policy
from email.message import EmailMessage as MimeMessage
from email.parser import BytesParser
from email.utils import getaddresses
from typing import Dict

from .models import EmailMessage


def _first_address(value: str | None) -> str:
    if not value:
        return ""
    for _name, address in getaddresses([str(value)]):
        if address:
            return address
    return ""


def _decode_part(part: MimeMessage) -> str:
    try:
        return part.get_content()
    except LookupError:
        # Unknown charset label; keep whatever decodes as UTF-8.
        payload = part.get_payload(decode=True) or b""
        return payload.decode("utf-8", errors="replace")


def _body_text(msg: MimeMessage) -> str:
    # Plain text first, HTML as a fallback for HTML-only notices.
    for preference in ("plain", "html"):
        part = msg.get_body(preferencelist=(preference,))
        if part is not None:
            return _decode_part(part)
    return ""


def parse_email_message(raw: bytes) -> EmailMessage:
    msg = BytesParser(policy=policy.default).parsebytes(raw)

    headers: Dict[str, str] = {}
    for key, value in msg.items():
        headers[key] = str(value)

    return EmailMessage(
        sender=_first_address(msg.get("From")),
        to=_first_address(msg.get("To")),
        subject=str(msg.get("Subject", "") or ""),
        content=_body_text(msg),
        headers=headers,
    )
