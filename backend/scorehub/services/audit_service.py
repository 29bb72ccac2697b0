"""Insert-only audit trail for account security events.

Actions: REGISTER, EMAIL_VERIFIED, LOGIN_SUCCESS, LOGIN_FAILED,
PASSWORD_RESET_REQUESTED, PASSWORD_RESET, PROFILE_UPDATED.
"""

import ipaddress
import logging
from typing import Optional

from fastapi import Request
from pymongo.errors import PyMongoError

import scorehub.database as _db
from scorehub.utils import utcnow

logger = logging.getLogger("scorehub.audit")


def anonymize_ip(ip: str) -> str:
    """Zero the host part: /24 for IPv4, /64 for IPv6. Unparseable input gives ""."""
    try:
        addr = ipaddress.ip_address(ip)
    except ValueError:
        return ""
    prefix = 24 if addr.version == 4 else 64
    return str(ipaddress.ip_network(f"{addr}/{prefix}", strict=False).network_address)


def _client_ip(request: Optional[Request]) -> str:
    if request is None:
        return ""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else ""


async def log_audit(
    *,
    action: str,
    actor_id: str,
    target_id: Optional[str] = None,
    metadata: Optional[dict] = None,
    request: Optional[Request] = None,
) -> None:
    """Record an audit event. A failed write is logged and never fails the request."""
    doc = {
        "timestamp": utcnow(),
        "action": action,
        "actor_id": actor_id,
        "target_id": target_id or actor_id,
        "metadata": metadata or {},
        "ip_anonymized": anonymize_ip(_client_ip(request)),
    }
    try:
        await _db.db.audit_logs.insert_one(doc)
    except PyMongoError:
        logger.exception("Failed to write audit log: action=%s actor=%s", action, actor_id)
