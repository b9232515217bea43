from .auth import ApiKeyAuth, AuthProvider, normalize_token
from .client import GraphQLClient
from .errors import (
    GraphQLError,
    GraphQLOperationError,
    LinearAPIError,
    NotFoundError,
    RateLimitError,
    SerializationError,
    TransportError,
    UnauthorizedError,
    ValidationError,
)
from .models import GraphQLErrorItem, GraphQLResult

__all__ = [
    "GraphQLClient",
    "AuthProvider",
    "ApiKeyAuth",
    "normalize_token",
    "GraphQLResult",
    "GraphQLErrorItem",
    "LinearAPIError",
    "TransportError",
    "SerializationError",
    "UnauthorizedError",
    "RateLimitError",
    "NotFoundError",
    "ValidationError",
    "GraphQLError",
    "GraphQLOperationError",
]
