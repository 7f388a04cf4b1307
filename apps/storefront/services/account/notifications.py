import logging
from typing import Any, Dict, List

from apps.storefront.repositories.store import Store
from apps.storefront.utils.clock import iso
from apps.storefront.utils.formatting import relative_time
from apps.storefront.utils.ids import record_id

log = logging.getLogger("picklish.notifications")


async def notify(store: Store, user_id: str, type: str, title: str, message: str, **refs: Any) -> Dict[str, Any]:
    doc = {
        "id": record_id("NTF"),
        "user_id": user_id,
        "type": type,
        "title": title,
        "message": message,
        "read": False,
        "created_at": iso(),
        **refs,
    }
    await store.notifications.insert(doc)
    log.info("notification %s for %s", type, user_id)
    return doc


async def list_notifications(store: Store, user_id: str, limit: int = 20) -> List[Dict[str, Any]]:
    rows = await store.notifications.find({"user_id": user_id}, order_by=("created_at", True), limit=limit)
    return [{**row, "time_ago": relative_time(row.get("created_at"))} for row in rows]


async def mark_read(store: Store, user_id: str, notification_id: str) -> bool:
    row = await store.notifications.get(notification_id)
    if not row or row.get("user_id") != user_id:
        return False
    await store.notifications.update(notification_id, {"read": True, "read_at": iso()})
    return True
