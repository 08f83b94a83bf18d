"""
Interfaz del repositorio de registros sincronizables.
Define el contrato que debe cumplir cualquier implementación.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict, List, Mapping


class ISyncRecordRepository(ABC):
    """
    Operaciones de persistencia que necesita el sync, por tipo de entidad.
    Ninguna implementacion hace commit: lo decide el caso de uso.
    """

    @abstractmethod
    async def find_changed_since(self, since: datetime) -> List[Dict[str, Any]]:
        """
        Obtiene las filas con updated_at estrictamente mayor que `since`.

        Args:
            since: Instante naive UTC

        Returns:
            List[Dict]: Filas como diccionarios columna -> valor
        """
        pass

    @abstractmethod
    async def upsert(self, record_id: Any, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Inserta el registro o lo sobreescribe si el id ya existe.

        Returns:
            Dict: Valores persistidos
        """
        pass

    @abstractmethod
    async def update_by_id(self, record_id: Any, values: Mapping[str, Any]) -> Dict[str, Any]:
        """
        Actualiza un registro existente.

        Raises:
            RecordNotFoundException: si no existe el id
        """
        pass

    @abstractmethod
    async def delete_by_id(self, record_id: Any) -> None:
        """
        Elimina un registro por id.

        Raises:
            RecordNotFoundException: si no existe el id
        """
        pass

    @abstractmethod
    async def execute_statement(self, statement: Any, params: Mapping[str, Any]) -> int:
        """
        Ejecuta una sentencia parametrizada.

        Returns:
            int: Filas afectadas
        """
        pass
