"""
Send push notifications to artists via Apple Push Notification service (APNs).
Requires APNS_KEY_ID, APNS_TEAM_ID, APNS_BUNDLE_ID, and APNS_KEY_P8_PATH or APNS_KEY_P8_BASE64 in .env.
If not configured, sends no-op (log and return 0).
"""
import base64
import logging
import time
from datetime import date
from pathlib import Path

import httpx
import jwt
from sqlalchemy.orm import Session

from artist_dispatch.config import settings
from artist_dispatch.core.enums import ServiceCategory
from artist_dispatch.models.artist import Artist
from artist_dispatch.models.push_token import PushToken

logger = logging.getLogger(__name__)

# APNs host: sandbox for dev builds, production for release
APNS_SANDBOX = "https://api.sandbox.push.apple.com"
APNS_PRODUCTION = "https://api.push.apple.com"

# JWT cache: (token_string, expiry_epoch). APNs accepts tokens with iat within last hour.
_jwt_cache: tuple[str, float] | None = None
_JWT_EXPIRY_SECONDS = 55 * 60  # refresh a bit before 1 hour

_CATEGORY_LABELS = {ServiceCategory.MUA: "Makeup", ServiceCategory.HS: "Hair"}


def _load_p8_key() -> str | None:
    """Load .p8 key from APNS_KEY_P8_BASE64 or APNS_KEY_P8_PATH. Return None if not set."""
    if settings.apns_key_p8_base64:
        try:
            return base64.b64decode(settings.apns_key_p8_base64).decode("utf-8")
        except Exception as e:
            logger.warning("APNS_KEY_P8_BASE64 decode failed: %s", e)
            return None
    path = settings.apns_key_p8_path
    if path and Path(path).exists():
        try:
            return Path(path).read_text(encoding="utf-8")
        except OSError as e:
            logger.warning("APNS_KEY_P8_PATH read failed: %s", e)
            return None
    return None


def _get_apns_jwt() -> str | None:
    """Build and cache JWT for APNs. Returns None if config missing."""
    global _jwt_cache
    if not settings.apns_key_id or not settings.apns_team_id:
        return None
    now = time.time()
    if _jwt_cache and _jwt_cache[1] > now:
        return _jwt_cache[0]
    p8 = _load_p8_key()
    if not p8:
        return None
    try:
        token = jwt.encode(
            {"iss": settings.apns_team_id, "iat": int(now)},
            p8,
            algorithm="ES256",
            headers={"alg": "ES256", "kid": settings.apns_key_id},
        )
        _jwt_cache = (token, now + _JWT_EXPIRY_SECONDS)
        return token
    except Exception as e:
        logger.warning("APNs JWT build failed: %s", e, exc_info=True)
        return None


def is_push_configured() -> bool:
    return bool(settings.apns_bundle_id and settings.apns_key_id and settings.apns_team_id)


def send_apns(device_token: str, title: str, body: str, data: dict | None = None) -> bool:
    """
    Send one push notification to an iOS device via APNs.
    Returns True if sent successfully, False otherwise (config missing or APNs error).
    """
    bundle_id = settings.apns_bundle_id
    if not bundle_id:
        logger.debug("APNS_BUNDLE_ID not set; skipping push")
        return False
    jwt_token = _get_apns_jwt()
    if not jwt_token:
        logger.debug("APNs not configured (key/team); skipping push")
        return False
    base_url = APNS_SANDBOX if settings.apns_use_sandbox else APNS_PRODUCTION
    url = f"{base_url}/3/device/{device_token}"
    headers = {
        "authorization": f"bearer {jwt_token}",
        "apns-topic": bundle_id,
        "apns-push-type": "alert",
        "apns-priority": "10",
    }
    payload: dict = {
        "aps": {
            "alert": {"title": title, "body": body},
            "sound": "default",
        }
    }
    if data:
        payload["data"] = data
    try:
        with httpx.Client(http2=True, timeout=10.0) as client:
            resp = client.post(url, json=payload, headers=headers)
        if resp.status_code == 200:
            return True
        logger.warning("APNs returned %s for token %s...: %s", resp.status_code, device_token[:20], resp.text)
        return False
    except Exception as e:
        logger.warning("APNs request failed: %s", e, exc_info=True)
        return False


def _send_to_tokens(tokens: list[str], title: str, body: str, data: dict | None = None) -> int:
    sent = 0
    for token in tokens:
        if send_apns(token, title, body, data=data):
            sent += 1
    return sent


def send_new_proposal_notification(
    db: Session,
    artist_ids: list[int],
    client_name: str,
    category: ServiceCategory,
    event_date: date | None = None,
) -> int:
    """
    "New proposal" push to every registered device of the given artists.
    Returns count of successful sends.
    """
    if not artist_ids:
        return 0
    tokens = [
        r.device_token
        for r in db.query(PushToken).filter(PushToken.artist_id.in_(list(artist_ids))).all()
    ]
    if not tokens:
        logger.debug("No push tokens for %s artists; skipping", len(artist_ids))
        return 0
    title = f"New proposal ({_CATEGORY_LABELS.get(category, category.value)})"
    body = client_name or "New client"
    if event_date:
        body = f"{body} on {event_date.strftime('%d/%m/%Y')}"
    sent = _send_to_tokens(tokens, title, body, data={"type": "new_proposal"})
    logger.info("Push: sent %s/%s new-proposal notifications to %s artists", sent, len(tokens), len(artist_ids))
    return sent


def send_push_to_category(db: Session, category: ServiceCategory, title: str, body: str) -> int:
    """Push to every active artist of a category (used when no batch could be created)."""
    tokens = [
        r.device_token
        for r in db.query(PushToken)
        .join(Artist, Artist.id == PushToken.artist_id)
        .filter(Artist.category == category.value, Artist.active.is_(True))
        .all()
    ]
    if not tokens:
        return 0
    return _send_to_tokens(tokens, title, body, data={"type": "new_proposal"})
