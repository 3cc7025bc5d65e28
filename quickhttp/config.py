"""
Configuration for quickhttp requests and responses.
"""

import copy
import logging
from typing import Any, Dict, Mapping, Optional

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    # JSON bodies back input() even on GET/HEAD requests.
    "json_overrides_method": True,
    "default_format": "html",
    # Extra format -> MIME type list entries for content negotiation.
    "formats": {},
    "upload_root": "",
    "hash_name_length": 40,
}


class HttpConfig:
    """Dictionary-backed settings shared by the requests of one application."""

    def __init__(self, config: Optional[Mapping[str, Any]] = None):
        self._config: Dict[str, Any] = copy.deepcopy(DEFAULTS)
        if config:
            self.configure(config)

    def configure(self, config: Mapping[str, Any]) -> "HttpConfig":
        """Load configuration values, rejecting unknown keys."""
        unknown = set(config) - set(DEFAULTS)
        if unknown:
            raise KeyError(f"Unknown configuration keys: {', '.join(sorted(unknown))}")
        self._config.update(config)
        logger.debug("Configuration updated: %s", sorted(config))
        return self

    def get(self, key: str, default: Any = None) -> Any:
        if key not in self._config:
            return default
        return self._config[key]

    def __repr__(self) -> str:
        return f"HttpConfig({self._config!r})"


default_config = HttpConfig()
