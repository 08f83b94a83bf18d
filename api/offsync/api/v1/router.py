"""
Router principal de la API v1.
Agrupa todos los endpoints de la version 1.
"""
from fastapi import APIRouter

from offsync.api.v1.endpoints import sync


# Router principal; las rutas quedan en la raiz salvo que se configure API_PREFIX
api_router = APIRouter()

# Incluir routers de endpoints especificos
api_router.include_router(sync.router)
