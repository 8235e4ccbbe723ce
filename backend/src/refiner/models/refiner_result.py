import secrets
import string
import time
from typing import Any

from sqlalchemy import JSON, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from backend.src.common.models.base import Base, CreatedAtMixin


_BASE36 = string.digits + string.ascii_lowercase


def _to_base36(value: int) -> str:
    digits = []
    while value:
        value, remainder = divmod(value, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits)) or "0"


def generate_refiner_id() -> str:
    """ref_<base36 epoch ms>_<6 random base36 chars>"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(6))
    return f"ref_{_to_base36(int(time.time() * 1000))}_{suffix}"


class RefinerResult(Base, CreatedAtMixin):
    """
    Polished refiner document plus the metadata of the run that produced it.

    Rows are write-once; the id is also returned to callers as _metadata.refinerId.
    """

    __tablename__ = "dreamcut_refiner"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_refiner_id)
    analyzer_id: Mapped[str | None] = mapped_column(String(128), nullable=True, index=True)

    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)

    # Run metadata
    model_used: Mapped[str] = mapped_column(String(128), nullable=False)
    processing_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Prompt / asset context
    template_used: Mapped[str | None] = mapped_column(String(64), nullable=True)
    asset_mix: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    complexity: Mapped[str | None] = mapped_column(String(32), nullable=True)

    # Creative profile
    creative_profile: Mapped[str | None] = mapped_column(String(64), nullable=True)
    profile_detection: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    __table_args__ = (Index("idx_dreamcut_refiner_created_at", "created_at"),)
