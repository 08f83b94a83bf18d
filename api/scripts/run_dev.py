"""
Script para ejecutar el servidor en modo desarrollo (con recarga).

Uso (desde api/):
    python scripts/run_dev.py
"""
import uvicorn
from loguru import logger

from offsync.core.config import settings


if __name__ == "__main__":
    logger.info(
        f"Levantando {settings.APP_NAME} en modo desarrollo "
        f"(zona de sync: {settings.SYNC_TIMEZONE})"
    )
    uvicorn.run(
        "main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        reload_dirs=["offsync"],
        log_level=settings.LOG_LEVEL.lower()
    )
