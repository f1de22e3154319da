"""
Service Catalog

Read-only access to the spa services, grouped by category for browsing.
"""

import logging
from typing import Any, Dict, Iterable, List

from spa_turnos.api.errors import ApiError
from spa_turnos.api.http import ApiClient
from spa_turnos.api.repository import ServiceRepository
from spa_turnos.models.schemas import Service
from spa_turnos.services.appointment import error_result

logger = logging.getLogger(__name__)

UNCATEGORIZED = "Otros"


def group_by_category(services: Iterable[Service]) -> Dict[str, List[Service]]:
    """Group services by ``tipo``, keeping the backend order inside each group."""
    groups: Dict[str, List[Service]] = {}
    for service in services:
        groups.setdefault(service.tipo.strip() or UNCATEGORIZED, []).append(service)
    return groups


class CatalogService:
    def __init__(self, client: ApiClient):
        self.service_repo = ServiceRepository(client)

    def list_services(self) -> Dict[str, Any]:
        try:
            services = self.service_repo.list_services()
        except ApiError as e:
            logger.error(f"Error loading services: {e}")
            return {**error_result(e, "No se pudieron cargar los servicios"), "services": []}
        return {"success": True, "message": "", "services": services}

    def grouped(self) -> Dict[str, Any]:
        result = self.list_services()
        result["categories"] = group_by_category(result.pop("services"))
        return result
