"""
Messages WhatsApp via l'API REST Twilio (httpx).
- Numéros haïtiens normalisés en E.164 (+509XXXXXXXX)
- 10 messages par minute et par utilisateur
- Chaque tentative est journalisée: sent, failed, simulated (Twilio non configuré) ou rate_limited
- send_whatsapp ne lève jamais: un échec d'envoi ne doit pas casser le checkout
"""
import logging
import re
from datetime import datetime, timezone
from typing import Optional

import httpx

from storefront.config import TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN, TWILIO_WHATSAPP_NUMBER
from storefront.notifications import repository

logger = logging.getLogger(__name__)

MAX_MESSAGES_PER_MINUTE = 10
TIMEOUT = 10

def format_haiti_phone(phone: Optional[str]) -> Optional[str]:
    if not phone:
        return None
    digits = re.sub(r"\D", "", phone)
    if digits.startswith("509") and len(digits) == 11:
        return f"+{digits}"
    if len(digits) == 8:
        return f"+509{digits}"
    if digits.startswith("1") and len(digits) == 11:
        return f"+{digits}"
    if phone.startswith("+"):
        return phone
    return f"+509{digits}"

def _twilio_send(to: str, body: str) -> str:
    url = f"https://api.twilio.com/2010-04-01/Accounts/{TWILIO_ACCOUNT_SID}/Messages.json"
    resp = httpx.post(
        url,
        data={"From": TWILIO_WHATSAPP_NUMBER, "To": f"whatsapp:{to}", "Body": body},
        auth=(TWILIO_ACCOUNT_SID, TWILIO_AUTH_TOKEN),
        timeout=TIMEOUT,
    )
    resp.raise_for_status()
    return (resp.json() or {}).get("sid") or ""

def send_whatsapp(to: Optional[str], template: str, message: str, user_id: Optional[str] = None) -> bool:
    formatted = format_haiti_phone(to)
    if not formatted or not message:
        logger.info("whatsapp.skip template=%s (no phone or empty message)", template)
        return False

    status, sid, error = "failed", None, None
    if user_id and repository.count_recent(user_id) >= MAX_MESSAGES_PER_MINUTE:
        status, error = "rate_limited", "Maximum 10 messages par minute"
    elif not (TWILIO_ACCOUNT_SID and TWILIO_AUTH_TOKEN):
        status = "simulated"
        logger.info("whatsapp.simulated template=%s to=%s", template, formatted)
    else:
        try:
            sid = _twilio_send(formatted, message)
            status = "sent"
        except (httpx.HTTPError, ValueError) as e:
            error = str(e)
            logger.exception("whatsapp.send failed template=%s to=%s", template, formatted)

    repository.log_notification({
        "user_id": user_id,
        "type": "whatsapp",
        "to": formatted,
        "template": template,
        "message_body": message,
        "status": status,
        "provider_sid": sid,
        "error": error,
        "created_at": datetime.now(timezone.utc).isoformat(),
    })
    return status == "sent"
