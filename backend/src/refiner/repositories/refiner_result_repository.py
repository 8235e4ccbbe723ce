from sqlalchemy.ext.asyncio import AsyncSession

from backend.src.common.repositories.base_repository import BaseRepository
from backend.src.refiner.models.refiner_result import RefinerResult


class RefinerResultRepository(BaseRepository[RefinerResult]):
    def __init__(self, session: AsyncSession):
        super().__init__(RefinerResult, session)
