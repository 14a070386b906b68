"""Domain errors raised by the ModelRisk service layer.

Each error carries the HTTP status routers translate it to.
"""


class ModelRiskError(Exception):
    """Base error for ModelRisk operations."""

    status_code = 500

    def __init__(self, message: str, code: str = "MODELRISK_ERROR"):
        self.message = message
        self.code = code
        super().__init__(message)


class NotFoundError(ModelRiskError):
    """Entity id could not be resolved."""

    status_code = 404

    def __init__(self, entity: str, entity_id: str):
        super().__init__(f"{entity} not found", "NOT_FOUND")
        self.entity = entity
        self.entity_id = entity_id


class InvalidStateError(ModelRiskError):
    """Action is not legal for the current lifecycle state."""

    status_code = 400

    def __init__(self, message: str, current_status: str | None = None):
        super().__init__(message, "INVALID_STATE")
        self.current_status = current_status


class AlreadyDoneError(ModelRiskError):
    """Action was already applied and cannot be repeated."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, "ALREADY_DONE")


class UpstreamFailureError(ModelRiskError):
    """Persistence or storage gateway failed."""

    def __init__(self, operation: str, cause: Exception):
        super().__init__(f"{operation}: {cause!s}", "UPSTREAM_FAILURE")
        self.operation = operation
        self.cause = cause


class ConfigurationError(ModelRiskError):
    """Rule set or artifact catalog could not be loaded."""

    def __init__(self, message: str):
        super().__init__(message, "CONFIGURATION_ERROR")


class InvalidFileError(ModelRiskError):
    """Uploaded file failed size or type checks."""

    status_code = 400

    def __init__(self, message: str):
        super().__init__(message, "INVALID_FILE")
