from sqlalchemy.ext.asyncio import AsyncSession

from backend.src.common.repositories.base_repository import BaseRepository
from backend.src.script.models.script_result import ScriptResult


class ScriptResultRepository(BaseRepository[ScriptResult]):
    def __init__(self, session: AsyncSession):
        super().__init__(ScriptResult, session)
