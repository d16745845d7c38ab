# studysphere/schemas/__init__.py
from .auth import AuthSession, AuthUser
from .billing import (
    AttachRequest,
    AttachResponse,
    Catalog,
    CustomerIdentity,
    Feature,
    FeatureItem,
    PriceItem,
    Product
)
from .chat import (
    ChatRequest,
    ChatSession,
    Message,
    Role,
    SortOrder
)

__all__ = [
    'AuthSession',
    'AuthUser',
    'AttachRequest',
    'AttachResponse',
    'Catalog',
    'CustomerIdentity',
    'Feature',
    'FeatureItem',
    'PriceItem',
    'Product',
    'ChatRequest',
    'ChatSession',
    'Message',
    'Role',
    'SortOrder'
]
