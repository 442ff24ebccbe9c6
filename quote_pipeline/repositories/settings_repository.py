from typing import Any, Dict, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from quote_pipeline.database.models import AppSetting
from quote_pipeline.repositories.base_repository import BaseRepository


class SettingsRepository(BaseRepository[AppSetting]):
    """Keyed JSON configuration documents."""

    def __init__(self, session: AsyncSession):
        super().__init__(session, AppSetting)

    async def get_settings(self, key: str) -> Optional[Dict[str, Any]]:
        row = await self.get_by_id(key)
        return row.settings if row else None

    async def put_settings(self, key: str, value: Dict[str, Any]) -> AppSetting:
        row = await self.get_by_id(key)
        if row is None:
            row = AppSetting(key=key, settings=value)
            self.session.add(row)
        else:
            row.settings = value
        await self.session.flush()
        return row
