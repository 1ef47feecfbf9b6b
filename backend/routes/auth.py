"""
Cadence CRM - Auth dependencies
Bearer session token -> user -> organization.
"""

import logging
from typing import Optional

from fastapi import HTTPException, Depends
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from config import db, now_iso

logger = logging.getLogger("auth")

security = HTTPBearer(auto_error=False)


async def _user_from_token(token: str) -> Optional[dict]:
    session = await db.sessions.find_one({
        "token": token,
        "expires_at": {"$gt": now_iso()}
    })
    if not session:
        return None

    return await db.users.find_one(
        {"id": session["user_id"]},
        {"_id": 0, "password": 0}
    )


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Récupère l'utilisateur connecté depuis le token."""
    if not credentials:
        raise HTTPException(status_code=401, detail="Non authentifié")

    user = await _user_from_token(credentials.credentials)
    if not user:
        raise HTTPException(status_code=401, detail="Session expirée")

    if not user.get("is_active", True):
        raise HTTPException(status_code=403, detail="Compte désactivé")

    return user


async def get_optional_user(credentials: HTTPAuthorizationCredentials = Depends(security)):
    """Utilisateur connecté ou None (mode demo). Ne leve jamais."""
    if not credentials:
        return None
    try:
        user = await _user_from_token(credentials.credentials)
    except Exception as e:
        logger.warning(f"[AUTH] Session lookup failed, continuing anonymous: {e}")
        return None
    if not user or not user.get("is_active", True):
        return None
    return user


def resolve_org_id(user: Optional[dict]) -> Optional[str]:
    if not user:
        return None
    return user.get("org_id") or None
