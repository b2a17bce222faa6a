from datetime import datetime
from typing import Any, Mapping

import bcrypt


def set_password(user: Mapping[str, Any] | object, password: str) -> dict[str, Any] | None:
    """
    Hash ``password`` into a user row that has a ``password`` field.

    Returns the row as a dict with ``password`` and ``updated_at`` replaced,
    ready for ``CommonModel.edit``; returns None when the row has no
    ``password`` field.
    """
    row = dict(user) if isinstance(user, Mapping) else dict(vars(user))
    if row.get("password") is None:
        return None
    row["password"] = bcrypt.hashpw(password.encode(), bcrypt.gensalt()).decode()
    row["updated_at"] = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    return row
