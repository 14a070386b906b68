"""Attachment service: use case files in MinIO with metadata in the database."""

import json
import logging

from minio.error import S3Error
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from modelrisk.config import get_settings
from modelrisk.errors import InvalidFileError, NotFoundError, UpstreamFailureError
from modelrisk.models.attachment import Attachment
from modelrisk.models.audit_event import AuditEventType
from modelrisk.models.base import generate_id
from modelrisk.models.use_case import UseCase
from modelrisk.services.audit_service import audit_service
from modelrisk.services.storage_service import StorageService
from modelrisk.utils.files import validate_file
from modelrisk.utils.metrics import ATTACHMENTS_UPLOADED

logger = logging.getLogger(__name__)


class AttachmentService:
    """Service for uploading, listing and deleting use case attachments."""

    async def _require_use_case(self, db: AsyncSession, use_case_id: str) -> None:
        exists = await db.scalar(select(UseCase.id).where(UseCase.id == use_case_id))
        if exists is None:
            raise NotFoundError("Use case", use_case_id)

    async def list_attachments(self, db: AsyncSession, use_case_id: str) -> list[Attachment]:
        result = await db.execute(
            select(Attachment)
            .where(Attachment.use_case_id == use_case_id)
            .order_by(Attachment.created_at.desc())
        )
        return list(result.scalars().all())

    async def get_attachment(
        self,
        db: AsyncSession,
        use_case_id: str,
        attachment_id: str,
    ) -> Attachment:
        """
        Get an attachment that belongs to the given use case.

        Raises:
            NotFoundError: If the attachment is unknown or belongs elsewhere
        """
        result = await db.execute(
            select(Attachment).where(
                Attachment.id == attachment_id,
                Attachment.use_case_id == use_case_id,
            )
        )
        attachment = result.scalar_one_or_none()
        if attachment is None:
            raise NotFoundError("Attachment", attachment_id)
        return attachment

    async def upload(
        self,
        db: AsyncSession,
        storage: StorageService,
        use_case_id: str,
        data: bytes,
        filename: str,
        content_type: str | None,
        attachment_type: str,
        artifact_id: str | None,
        actor: str,
    ) -> Attachment:
        """
        Validate, store and record a new attachment.

        The object is written to storage first; if the database write then
        fails the object is removed again.

        Args:
            db: Database session
            storage: Storage service to write to
            use_case_id: Owning use case
            data: File contents
            filename: Original filename
            content_type: Declared MIME type
            attachment_type: Attachment type label
            artifact_id: Catalog artifact this file evidences
            actor: Identity uploading the file

        Raises:
            NotFoundError: Unknown use case
            InvalidFileError: File too large or type not allowed
            UpstreamFailureError: Storage or database failure
        """
        await self._require_use_case(db, use_case_id)

        check = validate_file(
            len(data),
            content_type,
            max_size_bytes=get_settings().max_upload_size_bytes,
        )
        if not check.valid:
            raise InvalidFileError(check.error)

        try:
            stored = await storage.upload_file(use_case_id, data, filename, content_type)
        except S3Error as e:
            raise UpstreamFailureError("Failed to store attachment", e) from e

        attachment = Attachment(
            id=generate_id(),
            use_case_id=use_case_id,
            filename=filename,
            type=attachment_type,
            artifact_id=artifact_id,
            storage_path=stored["pathname"],
            url=stored["url"],
            file_size=stored["size"],
            mime_type=content_type,
        )

        try:
            db.add(attachment)
            audit_service.record(
                db,
                use_case_id,
                actor,
                AuditEventType.ATTACHMENT_UPLOADED,
                json.dumps({
                    "attachmentId": attachment.id,
                    "filename": filename,
                    "artifactId": artifact_id,
                    "type": attachment_type,
                }),
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to record attachment {filename}: {e}")
            try:
                await storage.delete_file(stored["pathname"])
            except S3Error as cleanup_error:
                logger.error(f"Failed to remove orphaned object {stored['pathname']}: {cleanup_error}")
            raise UpstreamFailureError("Failed to upload attachment", e) from e

        ATTACHMENTS_UPLOADED.labels(attachment_type=attachment_type).inc()
        logger.info(f"Attachment {attachment.id} uploaded to use case {use_case_id}")
        return attachment

    async def delete(
        self,
        db: AsyncSession,
        storage: StorageService,
        use_case_id: str,
        attachment_id: str,
        actor: str,
    ) -> None:
        """
        Delete an attachment record and its stored object.

        A storage failure is logged and the record is still removed, so a
        broken object never blocks cleanup of the use case.
        """
        attachment = await self.get_attachment(db, use_case_id, attachment_id)
        storage_path = attachment.storage_path
        details = json.dumps({
            "attachmentId": attachment_id,
            "filename": attachment.filename,
            "artifactId": attachment.artifact_id,
        })

        try:
            await storage.delete_file(storage_path)
        except S3Error as e:
            logger.error(f"Error deleting {storage_path} from storage: {e}")

        try:
            await db.delete(attachment)
            audit_service.record(
                db,
                use_case_id,
                actor,
                AuditEventType.ATTACHMENT_DELETED,
                details,
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            logger.error(f"Failed to delete attachment {attachment_id}: {e}")
            raise UpstreamFailureError("Failed to delete attachment", e) from e

        logger.info(f"Attachment {attachment_id} deleted from use case {use_case_id}")


# Singleton instance
attachment_service = AttachmentService()
