"""
Botanica Backend — Database Error Translation
===============================================

What:  Turns SQLAlchemy/driver errors into user-facing application exceptions.
How:   Matches on SQLSTATE codes (asyncpg exposes `sqlstate` on the original
       exception) and falls back to message substrings for SQLite.
Who:   PlantService and CategoryService, around every flush/commit.

Mapping:
    23505 / "UNIQUE constraint failed"   → ConflictError (name or SKU message)
    42501                                → DatabaseError "Permission denied..."
    42P01 / "no such table"              → DatabaseError "Table '<name>' not found..."
    chk_<field>_length                   → ValidationError "<field> is too long"
    anything else                        → DatabaseError (generic; raw text logged)
"""

import logging
import re
from typing import Optional

from sqlalchemy.exc import DBAPIError, SQLAlchemyError

from botanica.exceptions import (
    BotanicaError,
    ConflictError,
    DatabaseError,
    ValidationError,
)

logger = logging.getLogger(__name__)

_LENGTH_CHECK = re.compile(r"chk_(\w+?)_length")
_PG_MISSING_TABLE = re.compile(r'relation "([^"]+)" does not exist')
_SQLITE_MISSING_TABLE = re.compile(r"no such table: (\w+)")
_SKU_UNIQUE = re.compile(r"plants_sku|plants\.sku|key \(sku\)")


def _sqlstate(exc: SQLAlchemyError) -> Optional[str]:
    orig = getattr(exc, "orig", None)
    for attr in ("sqlstate", "pgcode"):
        code = getattr(orig, attr, None)
        if code:
            return str(code)
    # asyncpg errors arrive wrapped by the SQLAlchemy adapter
    cause = getattr(orig, "__cause__", None)
    code = getattr(cause, "sqlstate", None)
    return str(code) if code else None


def translate_database_error(exc: SQLAlchemyError, entity: str = "plant") -> BotanicaError:
    """
    Map a database exception to the application exception the client should see.

    Args:
        exc:     The SQLAlchemy exception raised by flush/commit/execute
        entity:  Noun used in the unique-violation message ("plant", "category")
    """
    code = _sqlstate(exc) if isinstance(exc, DBAPIError) else None
    text = str(getattr(exc, "orig", None) or exc)
    lowered = text.lower()

    if code == "23505" or "unique constraint" in lowered or "duplicate key" in lowered:
        if _SKU_UNIQUE.search(lowered):
            return ConflictError(f"A {entity} with this SKU already exists.")
        return ConflictError(f"A {entity} with this name already exists.")

    if code == "42501" or "permission denied" in lowered:
        return DatabaseError("Permission denied. Please check database access policies.")

    if code == "42P01" or "no such table" in lowered or _PG_MISSING_TABLE.search(text):
        match = _PG_MISSING_TABLE.search(text) or _SQLITE_MISSING_TABLE.search(text)
        table = match.group(1) if match else "unknown"
        return DatabaseError(f"Table '{table}' not found. Please run database migrations.")

    length = _LENGTH_CHECK.search(text)
    if length:
        field = length.group(1)
        return ValidationError(f"{field} is too long", field=field)

    logger.error("Unmapped database error: %s", text)
    return DatabaseError()
