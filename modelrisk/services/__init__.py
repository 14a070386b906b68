"""Service layer for ModelRisk API."""

from .attachment_service import AttachmentService, attachment_service
from .audit_service import AuditService, audit_service
from .finding_service import FindingService, finding_service
from .inventory_service import InventoryService, inventory_service
from .storage_service import StorageService, storage_service
from .use_case_service import UseCaseService, use_case_service

__all__ = [
    "AttachmentService",
    "AuditService",
    "FindingService",
    "InventoryService",
    "StorageService",
    "UseCaseService",
    "attachment_service",
    "audit_service",
    "finding_service",
    "inventory_service",
    "storage_service",
    "use_case_service",
]
