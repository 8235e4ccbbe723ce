import secrets
import string
import time
from typing import Any

from sqlalchemy import JSON, Boolean, Float, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from backend.src.common.models.base import Base, CreatedAtMixin


_BASE36 = string.digits + string.ascii_lowercase


def generate_script_id() -> str:
    """script_<epoch ms>_<9 random base36 chars>"""
    suffix = "".join(secrets.choice(_BASE36) for _ in range(9))
    return f"script_{int(time.time() * 1000)}_{suffix}"


class ScriptResult(Base, CreatedAtMixin):
    """Generated (or synthesized fallback) script with its quality assessment."""

    __tablename__ = "script_enhancer_results"

    id: Mapped[str] = mapped_column(String(64), primary_key=True, default=generate_script_id)
    user_prompt: Mapped[str] = mapped_column(Text, nullable=False)
    profile_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    duration_seconds: Mapped[float] = mapped_column(Float, nullable=False)

    script_data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    quality_assessment: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    processing_time_ms: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_fallback: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    __table_args__ = (Index("idx_script_enhancer_results_created_at", "created_at"),)
