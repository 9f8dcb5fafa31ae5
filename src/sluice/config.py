"""Proxy configuration.

ProxyConfig is a frozen dataclass: immutable after creation, with typed
attributes instead of string-key dict lookups.
"""

from dataclasses import dataclass
from pathlib import Path
from urllib.parse import urlsplit

from sluice.errors import ConfigurationError


@dataclass(frozen=True, slots=True)
class ProxyConfig:
    """Proxy configuration. Immutable after creation.

    All fields have sensible defaults. Override what you need::

        config = ProxyConfig(
            upstream="http://127.0.0.1:5173",
            scope_url="http://127.0.0.1:8000/",
            cache_path="sluice-cache.sqlite3",
        )
    """

    # Server
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False

    # Upstream origin that every intercepted request is forwarded to
    upstream: str = "http://127.0.0.1:8080"

    # Public root URL of the proxy (the registration scope).
    # Requests for exactly this URL record the root and trigger a version check.
    scope_url: str = "http://127.0.0.1:8000/"

    # Cache generation names
    kv_cache_name: str = "SWHelperCache"
    versioned_prefix: str = "cache-v1-"
    static_cache_name: str = "cache-v1-static"
    offline_cache_name: str = "cache-v1-offline"

    # Persistent cache file (None = in-memory generations)
    cache_path: str | Path | None = None

    # URLs stored in the versioned generation at install time
    precache: tuple[str, ...] = ()

    # Version manifest, resolved relative to the root URL
    version_manifest: str = "./version.json"

    # Compilation
    builtin_prefix: str = "/noname-builtinModules/"
    anchor_segment: str = "extension"
    framework_module: str = "vue"
    framework_local_path: str = "game/vue.esm-browser.js"
    virtual_module_limit: int | None = 512

    # Diagnostic message channel
    message_path: str = "/__sluice__/message"

    # Network
    request_timeout: float = 30.0

    # Logging
    log_level: str = "info"

    def validate(self) -> None:
        """Raise ``ConfigurationError`` for values the proxy cannot run with."""
        for name in ("upstream", "scope_url"):
            value = getattr(self, name)
            parts = urlsplit(value)
            if parts.scheme not in ("http", "https") or not parts.netloc:
                msg = f"{name} must be an absolute http(s) URL, got {value!r}"
                raise ConfigurationError(msg)

        names = {
            self.kv_cache_name,
            self.static_cache_name,
            self.offline_cache_name,
        }
        if len(names) != 3:
            msg = "kv_cache_name, static_cache_name and offline_cache_name must differ"
            raise ConfigurationError(msg)
        if not self.versioned_prefix:
            msg = "versioned_prefix must not be empty"
            raise ConfigurationError(msg)

        if not (self.builtin_prefix.startswith("/") and self.builtin_prefix.endswith("/")):
            msg = f"builtin_prefix must start and end with '/', got {self.builtin_prefix!r}"
            raise ConfigurationError(msg)

        if self.virtual_module_limit is not None and self.virtual_module_limit < 1:
            msg = "virtual_module_limit must be positive or None"
            raise ConfigurationError(msg)
