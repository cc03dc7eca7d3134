"""
Error taxonomy for deployment and provisioning.

Services raise these internally; public entry points convert them into
structured results carrying an error code.
"""
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError


class DeploymentError(Exception):
    """Base class for every error raised by the deployer."""
    error_code = "deployment_error"


class NotFoundError(DeploymentError):
    """A required record does not exist. Not retried."""
    error_code = "not_found"


class TemplateNotFound(NotFoundError):
    error_code = "template_not_found"


class PlanNotFound(NotFoundError):
    error_code = "plan_not_found"


class DeploymentNotFound(NotFoundError):
    error_code = "deployment_not_found"


class DeployTargetMissing(NotFoundError):
    """The workspace's plan is not linked to any team template."""
    error_code = "deploy_target_missing"


class IncompleteAgentReference(DeploymentError):
    """A team-agent link points at no resolvable agent."""
    error_code = "incomplete_agent_reference"


class ConflictError(DeploymentError):
    """A conditional write lost a race; the caller may re-poll."""
    error_code = "conflict"


class TransientStoreError(DeploymentError):
    """The store failed in a way that may succeed on retry."""
    error_code = "transient_store_error"


class InvalidScheduleError(DeploymentError, ValueError):
    """Unparseable cron expression or unknown timezone."""
    error_code = "invalid_schedule"


def is_unique_violation(exc: SQLAlchemyError) -> bool:
    """True when exc is a uniqueness conflict (Postgres 23505 or SQLite UNIQUE)."""
    if not isinstance(exc, IntegrityError):
        return False
    orig = getattr(exc, "orig", None)
    if getattr(orig, "pgcode", None) == "23505" or getattr(orig, "sqlstate", None) == "23505":
        return True
    message = str(orig) if orig is not None else str(exc)
    return "UNIQUE constraint failed" in message or "duplicate key value" in message


def is_transient(exc: Exception) -> bool:
    """True for connection-level failures worth one retry."""
    if isinstance(exc, TransientStoreError):
        return True
    if isinstance(exc, OperationalError):
        return bool(getattr(exc, "connection_invalidated", False)) or "connection" in str(exc).lower()
    return False
