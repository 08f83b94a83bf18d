"""
Modelos de base de datos (ORM).

Las tablas replican el esquema que usan los clientes offline:
- mh_off_orders: ordenes creadas en el punto de venta
- mh_products: catalogo de productos
- sync_schema_versions: revision de esquema conocida por cada tabla
"""
from sqlalchemy import Boolean, Column, Date, DateTime, Integer, Numeric, String, Text, Time, text, true
from sqlalchemy.dialects import mysql
from sqlalchemy.sql import func

from offsync.infrastructure.database.session import Base


# DATETIME(3) en MySQL; el resto de dialectos ya guarda milisegundos.
PreciseDateTime = DateTime().with_variant(mysql.DATETIME(fsp=3), "mysql")


class OrderModel(Base):
    """Modelo de base de datos para ordenes offline."""

    __tablename__ = "mh_off_orders"
    __schema_revision__ = "20251112102603_init_orders"

    id = Column(String(36), primary_key=True)
    location_id = Column(String(36), nullable=False)
    customer_id = Column(String(36), nullable=True)
    order_no = Column(String(15), nullable=False)
    order_type_id = Column(String(36), nullable=False)
    order_date = Column(Date, nullable=False)
    order_time = Column(Time, nullable=False)
    ip_address = Column(String(40), nullable=False)
    user_agent = Column(String(256), nullable=False)
    updated_at = Column(PreciseDateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<Order(id={self.id}, order_no={self.order_no}, order_date={self.order_date})>"


class ProductModel(Base):
    """Modelo de base de datos para productos."""

    __tablename__ = "mh_products"
    __schema_revision__ = "20251113071026_add_mh_products"

    id = Column(String(36), primary_key=True)
    product_code = Column(String(50), nullable=False)
    product_name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    price = Column(Numeric(10, 2, asdecimal=True), nullable=False)
    stock_quantity = Column(Integer, nullable=False, default=0, server_default=text("0"))
    is_active = Column(Boolean, nullable=False, default=True, server_default=true())
    updated_at = Column(PreciseDateTime, nullable=False, index=True)

    def __repr__(self):
        return f"<Product(id={self.id}, product_code={self.product_code}, price={self.price})>"


class SchemaVersionModel(Base):
    """
    Revision de esquema registrada por tabla.

    Una tabla sin fila aqui existe pero no se sabe si tiene todas las
    columnas del modelo (p.ej. creada fuera de este servicio).
    """

    __tablename__ = "sync_schema_versions"

    table_name = Column(String(64), primary_key=True)
    revision = Column(String(64), nullable=False)
    applied_at = Column(DateTime, nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<SchemaVersion(table={self.table_name}, revision={self.revision})>"
