"""Attachments router for ModelRisk API.

Files supporting a use case (model documentation, validation reports,
monitoring plans) are stored in MinIO; metadata lives in the database.
"""

import logging

from fastapi import APIRouter, File, Form, HTTPException, Path, Query, Request, UploadFile
from fastapi import status as http_status
from fastapi.responses import RedirectResponse
from minio.error import S3Error

from modelrisk.database import DbSession
from modelrisk.dependencies import Storage, Submitter
from modelrisk.errors import ModelRiskError
from modelrisk.schemas.attachment import AttachmentListResponse, AttachmentResponse
from modelrisk.schemas.common import MessageResponse
from modelrisk.services.attachment_service import attachment_service
from modelrisk.utils.rate_limit import GENERAL_RATE_LIMIT, limiter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/usecases/{use_case_id}/attachments", tags=["attachments"])

DOWNLOAD_URL_EXPIRES_SECONDS = 3600


@router.get(
    "",
    response_model=AttachmentListResponse,
    summary="List attachments",
)
async def list_attachments(
    db: DbSession,
    use_case_id: str = Path(..., description="Use case ID"),
) -> AttachmentListResponse:
    try:
        attachments = await attachment_service.list_attachments(db, use_case_id)
        return AttachmentListResponse(
            attachments=[AttachmentResponse.model_validate(a) for a in attachments],
            count=len(attachments),
        )

    except Exception as e:
        logger.error(f"Failed to list attachments for {use_case_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch attachments",
        )


@router.post(
    "",
    response_model=AttachmentResponse,
    status_code=http_status.HTTP_201_CREATED,
    summary="Upload attachment",
    description="Upload a file (max size and allowed types are configured) to a use case.",
)
@limiter.limit(GENERAL_RATE_LIMIT)
async def upload_attachment(
    request: Request,
    db: DbSession,
    storage: Storage,
    submitter: Submitter,
    use_case_id: str = Path(..., description="Use case ID"),
    file: UploadFile = File(..., description="File to attach"),
    attachment_type: str = Form("Other", alias="type", description="Attachment type"),
    artifact_id: str | None = Form(None, alias="artifactId", description="Catalog artifact this file evidences"),
) -> AttachmentResponse:
    """
    Upload an attachment.

    Returns 400 for files that are too large or of a disallowed type.
    """
    try:
        content = await file.read()
        attachment = await attachment_service.upload(
            db,
            storage,
            use_case_id,
            content,
            filename=file.filename or "file",
            content_type=file.content_type,
            attachment_type=attachment_type,
            artifact_id=artifact_id,
            actor=submitter,
        )
        return AttachmentResponse.model_validate(attachment)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to upload attachment to {use_case_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to upload attachment: {e!s}",
        )


@router.get(
    "/{attachment_id}",
    response_model=AttachmentResponse,
    summary="Get attachment",
    description="Get attachment metadata, or redirect to a download link with ?action=download.",
    responses={307: {"description": "Redirect to a presigned download URL"}},
)
async def get_attachment(
    db: DbSession,
    storage: Storage,
    use_case_id: str = Path(..., description="Use case ID"),
    attachment_id: str = Path(..., description="Attachment ID"),
    action: str | None = Query(None, description="Set to 'download' to redirect to the file"),
):
    try:
        attachment = await attachment_service.get_attachment(db, use_case_id, attachment_id)

        if action == "download":
            url = await storage.generate_presigned_url(
                attachment.storage_path,
                expires=DOWNLOAD_URL_EXPIRES_SECONDS,
            )
            return RedirectResponse(url=url)

        return AttachmentResponse.model_validate(attachment)

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except S3Error as e:
        logger.error(f"Failed to create download link for {attachment_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to fetch attachment: {e!s}",
        )
    except Exception as e:
        logger.error(f"Failed to get attachment {attachment_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch attachment",
        )


@router.delete(
    "/{attachment_id}",
    response_model=MessageResponse,
    summary="Delete attachment",
)
@limiter.limit(GENERAL_RATE_LIMIT)
async def delete_attachment(
    request: Request,
    db: DbSession,
    storage: Storage,
    submitter: Submitter,
    use_case_id: str = Path(..., description="Use case ID"),
    attachment_id: str = Path(..., description="Attachment ID"),
) -> MessageResponse:
    try:
        await attachment_service.delete(db, storage, use_case_id, attachment_id, submitter)
        return MessageResponse(message="Attachment deleted")

    except ModelRiskError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    except Exception as e:
        logger.error(f"Failed to delete attachment {attachment_id}: {e}")
        raise HTTPException(
            status_code=http_status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Failed to delete attachment: {e!s}",
        )
