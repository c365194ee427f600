"""User cache module.

Provides:
- Lazy materialization of identity provider users
- Role change to educator
"""

from .models import USERS_TABLES_CQL, User


__all__ = ["USERS_TABLES_CQL", "User"]
