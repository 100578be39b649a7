import uuid


def new_id() -> str:
    """UUID4 primary keys, stored as 36-char strings."""
    return str(uuid.uuid4())
