import logging
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from app.modules.models.schemas import ModelDeclaration
from app.modules.records.statements import build_table

logger = logging.getLogger(__name__)


class MaterializationError(Exception):
    """Raised when the physical table for a declaration cannot be created"""


class SchemaMaterializer:
    def __init__(self, engine: Engine):
        self.engine = engine

    def materialize(self, declaration: ModelDeclaration) -> str:
        """Create the declaration's table if it does not exist yet. Never alters an existing table."""
        try:
            table = build_table(declaration)
        except ValueError as e:
            raise MaterializationError(str(e)) from e
        try:
            table.create(self.engine, checkfirst=True)
        except SQLAlchemyError as e:
            logger.error(f"Failed to materialize {declaration.name} as {table.name}: {e}")
            raise MaterializationError(f"Failed to create table {table.name}") from e
        logger.info(f"Materialized model {declaration.name} as table {table.name}")
        return table.name
