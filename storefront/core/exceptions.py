"""Domain exceptions raised by the services and mapped to HTTP by the API layer."""


class ConflictError(Exception):
    """A unique key (username, email, slug, name) is already taken, or a row is still referenced."""
    pass
