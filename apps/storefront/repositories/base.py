from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple


class DocumentRepository:
    """
    Keyed document access over one Supabase table.

    Rows are plain dicts; nested values live in json columns. The store
    has no cross-row transactions, so callers sequence multi-row writes.
    """

    def __init__(self, supabase_client: Any, table: str, *, key: str = "id") -> None:
        self.sb = supabase_client
        self.table = table
        self.key = key

    def _query(self):
        return self.sb.table(self.table)

    async def get(self, key_value: str) -> Optional[Dict[str, Any]]:
        r = self._query().select("*").eq(self.key, key_value).limit(1).execute()
        rows = getattr(r, "data", None) or []
        return rows[0] if rows else None

    async def insert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        r = self._query().insert(doc).execute()
        rows = getattr(r, "data", None) or []
        return rows[0] if rows else doc

    async def upsert(self, doc: Dict[str, Any]) -> Dict[str, Any]:
        r = self._query().upsert(doc, on_conflict=self.key).execute()
        rows = getattr(r, "data", None) or []
        return rows[0] if rows else doc

    async def update(self, key_value: str, changes: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        r = self._query().update(changes).eq(self.key, key_value).execute()
        rows = getattr(r, "data", None) or []
        return rows[0] if rows else None

    async def delete(self, key_value: str) -> None:
        self._query().delete().eq(self.key, key_value).execute()

    async def find(
        self,
        filters: Optional[Dict[str, Any]] = None,
        *,
        order_by: Optional[Tuple[str, bool]] = None,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        """
        Equality filters only. order_by is (column, descending).
        """
        q = self._query().select("*")
        for col, val in (filters or {}).items():
            q = q.eq(col, val)
        if order_by:
            q = q.order(order_by[0], desc=order_by[1])
        if limit is not None:
            q = q.range(offset, offset + limit - 1)
        r = q.execute()
        return [row for row in (getattr(r, "data", None) or []) if isinstance(row, dict)]
