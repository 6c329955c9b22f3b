"""Error handling utilities."""


class PropertyHubError(Exception):
    """Base exception for PropertyHub backend."""
    pass


class ConfigurationError(PropertyHubError):
    """Required configuration is missing or invalid."""
    pass


class BackendUnavailableError(PropertyHubError):
    """Remote backend could not be reached or failed server-side."""
    pass


class SupabaseError(BackendUnavailableError):
    """Supabase operation error."""
    pass


class BackendRequestError(PropertyHubError):
    """Remote backend rejected the request (4xx other than 404)."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(PropertyHubError):
    """Requested record does not exist."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(f"{resource} not found: {resource_id}")
        self.resource = resource
        self.resource_id = resource_id


class InvalidTransitionError(PropertyHubError):
    """Status change not allowed from the current status."""

    def __init__(self, entity: str, current: str, target: str):
        super().__init__(f"Cannot move {entity} from '{current}' to '{target}'")
        self.entity = entity
        self.current = current
        self.target = target
