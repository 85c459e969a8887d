"""arkestone - Observable stores, REST service bindings and access control."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("arkestone")
except PackageNotFoundError:
    __version__ = "0+local"
from arkestone.acl import (
    Access,
    AccessConfig,
    AccessMode,
    AccessStatus,
    create_acl_store,
    get_acl_store,
    use_access,
)
from arkestone.api import request, set_transport
from arkestone.config import ApiSettings, AppConfig, get_config_store
from arkestone.envelope import Failure, Success, display_error_message, parse_envelope
from arkestone.exceptions import (
    AccessDeniedError,
    ArkestoneConfigError,
    ArkestoneError,
    ArkestoneRequestError,
    ArkestoneTransportError,
    MissingIdentifierError,
    StoreNotConfiguredError,
)
from arkestone.notify import LoggingNotifier, Notifier, set_notifier
from arkestone.registry import clear_stores, get_store
from arkestone.service import ListResponse, ServiceConfig, ServiceFactory, StoreConfig
from arkestone.storage import FileStorage, MemoryStorage, Storage, set_default_storage
from arkestone.store import PersistedSnapshot, Store, create_store
from arkestone.transport import HttpRequest, HttpResponse, HttpTransport, Transport

__all__ = [
    "__version__",
    "Access",
    "AccessConfig",
    "AccessDeniedError",
    "AccessMode",
    "AccessStatus",
    "ApiSettings",
    "AppConfig",
    "ArkestoneConfigError",
    "ArkestoneError",
    "ArkestoneRequestError",
    "ArkestoneTransportError",
    "Failure",
    "FileStorage",
    "HttpRequest",
    "HttpResponse",
    "HttpTransport",
    "ListResponse",
    "LoggingNotifier",
    "MemoryStorage",
    "MissingIdentifierError",
    "Notifier",
    "PersistedSnapshot",
    "ServiceConfig",
    "ServiceFactory",
    "Storage",
    "Store",
    "StoreConfig",
    "StoreNotConfiguredError",
    "Success",
    "Transport",
    "clear_stores",
    "create_acl_store",
    "create_store",
    "display_error_message",
    "get_acl_store",
    "get_config_store",
    "get_store",
    "parse_envelope",
    "request",
    "set_default_storage",
    "set_notifier",
    "set_transport",
    "use_access",
]
