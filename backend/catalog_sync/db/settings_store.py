"""
Settings store — key/value rows edited outside the pipeline.
Version: 1.0.0
"""

from typing import Dict

from catalog_sync.db.base_store import BaseStore

SETTINGS_TABLE = "settings_base"


class SettingsStore(BaseStore):

    async def get_values(self, prefix: str = "") -> Dict[str, str]:
        """Return {key: value} for every settings row whose key starts with prefix."""
        rows = await self._select(SETTINGS_TABLE, "key,value")
        return {
            row["key"]: row.get("value")
            for row in rows
            if row.get("key", "").startswith(prefix)
        }
