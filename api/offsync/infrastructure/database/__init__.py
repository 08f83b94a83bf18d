"""
Configuración de base de datos.

Importa todos los modelos para que se registren con Base
antes de crear las tablas.
"""
from offsync.infrastructure.database.models import (
    OrderModel,
    ProductModel,
    SchemaVersionModel,
)
