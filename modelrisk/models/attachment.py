"""Attachment model for ModelRisk."""

from sqlalchemy import BigInteger, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base


class Attachment(Base):
    """Attachment model for files supplied with a use case.

    Attributes:
        id: String UUID primary key (inherited from Base)
        use_case_id: Owning use case
        filename: Original filename
        type: Attachment type (Vendor doc, Architecture diagram, ...)
        artifact_id: Catalog artifact this file evidences, if any
        storage_path: Object key in the attachments bucket
        url: Public URL of the stored object
        file_size: Size in bytes
        mime_type: Declared MIME type
    """

    __tablename__ = "attachments"

    use_case_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("use_cases.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )

    filename: Mapped[str] = mapped_column(String(255), nullable=False)

    type: Mapped[str] = mapped_column(
        String(50),
        default="Other",
        nullable=False,
    )

    artifact_id: Mapped[str | None] = mapped_column(String(100), nullable=True)

    storage_path: Mapped[str] = mapped_column(String(512), nullable=False)

    url: Mapped[str | None] = mapped_column(Text, nullable=True)

    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False)

    mime_type: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Attachment(id={self.id}, filename='{self.filename}')>"
