from datetime import datetime

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, validates

from .base import Base


AUDIT_RESULTS = frozenset({"SUCCESS", "FAILURE"})


class AuditLog(Base):
    __tablename__ = "audit_logs"
    __table_args__ = (
        CheckConstraint("result IN ('SUCCESS', 'FAILURE')", name="ck_audit_logs_result_valid"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("users.id", ondelete="SET NULL"),
        nullable=True,
        index=True,
    )
    job_id: Mapped[int | None] = mapped_column(Integer, nullable=True, index=True)
    action: Mapped[str] = mapped_column(
        String(100), nullable=False, index=True
    )  # e.g., 'EXECUTE_JOB', 'STOP_JOB'
    target: Mapped[str | None] = mapped_column(String(255))  # e.g., 'Job 42'
    result: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    message: Mapped[str | None] = mapped_column(Text)
    ip_address: Mapped[str | None] = mapped_column(String(45))  # IPv4/IPv6
    user_agent: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False, index=True
    )

    @validates("result")
    def validate_result(self, key: str, value: str) -> str:
        if value not in AUDIT_RESULTS:
            raise ValueError(
                f"Invalid audit result '{value}'. "
                f"Must be one of: {', '.join(sorted(AUDIT_RESULTS))}"
            )
        return value
