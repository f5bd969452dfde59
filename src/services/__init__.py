"""Remote tool services.

The service table is closed: every supported service is a member of
``Service`` and resolves to exactly one descriptor through ``get_service``.
"""

from services.base import Service, ServiceDescriptor, UnknownServiceError
from services.image import IMAGE_SERVICE
from services.search import SEARCH_SERVICE

SERVICES: dict[Service, ServiceDescriptor] = {
    Service.IMAGE: IMAGE_SERVICE,
    Service.SEARCH: SEARCH_SERVICE,
}

# Catalogs are merged in this order; later services win on name collisions
DEFAULT_SERVICES: tuple[Service, ...] = (Service.IMAGE, Service.SEARCH)


def get_service(key: Service | str) -> ServiceDescriptor:
    """
    Resolve a service key to its descriptor.

    Raises:
        UnknownServiceError: If the key is not a known service
    """
    try:
        service = Service(key)
    except ValueError:
        raise UnknownServiceError(key) from None
    return SERVICES[service]


__all__ = [
    "Service",
    "ServiceDescriptor",
    "UnknownServiceError",
    "SERVICES",
    "DEFAULT_SERVICES",
    "get_service",
]
