"""
Service de journalisation des activités
"""

from config import db, now_iso
import uuid


async def log_activity(
    user: dict,
    action: str,
    entity_type: str,
    entity_id: str = None,
    entity_name: str = None,
    details: dict = None,
    ip_address: str = None,
    database=None,
):
    """
    Enregistre une activité dans le journal de l'organisation

    Actions: create, update, delete
    Entity types: deal, company
    """
    log_entry = {
        "id": str(uuid.uuid4()),
        "org_id": user.get("org_id"),
        "user_id": user.get("id", "system"),
        "user_email": user.get("email", "system"),
        "user_name": user.get("full_name") or user.get("nom", "System"),
        "action": action,
        "entity_type": entity_type,
        "entity_id": entity_id,
        "entity_name": entity_name,
        "details": details or {},
        "ip_address": ip_address,
        "created_at": now_iso()
    }

    await (database if database is not None else db).activity_logs.insert_one(log_entry)
    return log_entry
