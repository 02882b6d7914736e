"""
Enum Utilities for VARCHAR-based Status Fields

ARCHITECTURE STANDARD:
━━━━━━━━━━━━━━━━━━━━━━
• Database: VARCHAR(50) - NOT a database ENUM type
• SQLAlchemy: String(50) with Mapped[str]
• Pydantic: Python Enum for API validation
• API Response: Use string directly (NO .value needed)
• Case: assignment statuses are stored in lowercase snake_case

DATA FLOW:
━━━━━━━━━━
INPUT (API Request / service call):
    Enum → .value → String → Database
    Example: AssignmentStatus.IN_QUEUE → "in_queue" → VARCHAR

OUTPUT (API Response):
    Database → String → Return directly
"""

from enum import Enum
from typing import Any, Optional, Type


def get_enum_value(value: Any) -> Optional[str]:
    """
    Safely get string value from an enum or string.

    Examples:
        >>> get_enum_value(AssignmentStatus.DONE)
        'done'
        >>> get_enum_value("done")
        'done'
    """
    if value is None:
        return None
    if isinstance(value, Enum):
        return value.value
    return str(value)


def enum_comment(enum_class: Type[Enum]) -> str:
    """Comma-separated list of valid values, for VARCHAR column comments."""
    return ", ".join(e.value for e in enum_class)


def is_status(db_value: Optional[str], enum_value: Enum) -> bool:
    """Compare a database string with an enum value."""
    if db_value is None:
        return False
    return db_value == enum_value.value
