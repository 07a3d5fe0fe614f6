from typing import Any

import structlog

from clinic_billing.core.domain.entities._base import to_primitive
from clinic_billing.core.domain.repositories.audit_repository import AuditRepository
from plugins.django_interface.models import AuditLog

logger = structlog.get_logger(__name__)


class AuditRepoImpl(AuditRepository):
    def log(  # noqa: PLR0913
        self,
        *,
        action: str,
        entity_type: str,
        entity_id: str,
        user_id: str | None,
        details: dict[str, Any] | None = None,
    ) -> None:
        AuditLog.objects.create(
            action=action,
            entity_type=entity_type,
            entity_id=str(entity_id),
            user_id=user_id,
            details=to_primitive(details or {}),
        )
        logger.debug("audit.logged", action=action, entity_type=entity_type, entity_id=str(entity_id))
