"""
Service Catalog Routes
"""

from fastapi import APIRouter, Depends, Request

from spa_turnos.routes.deps import get_catalog_service, respond
from spa_turnos.services.catalog import CatalogService

router = APIRouter(prefix="/servicios", tags=["servicios"])


@router.get("")
def list_services(request: Request, catalog: CatalogService = Depends(get_catalog_service)):
    return respond(request, catalog.list_services())


@router.get("/categorias")
def list_categories(request: Request, catalog: CatalogService = Depends(get_catalog_service)):
    return respond(request, catalog.grouped())
