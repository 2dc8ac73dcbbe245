"""
Exceptions shared by the storage and identity layers.

Endpoints translate these into HTTP responses; see the handlers in main.py.
"""


class StoreUnavailable(Exception):
    """A backing store (database or session store) could not serve the request."""
    pass


class StoreNotReady(StoreUnavailable):
    """The store handle was used before its startup connection completed."""
    pass


class AuthProviderError(Exception):
    """The identity provider rejected the login or could not be reached."""
    pass
