"""Utility functions for configuration and settings."""

import json
import logging
import os
from typing import Any, Dict, Optional

from .. import __version__

log = logging.getLogger(__name__)

DEFAULTS = {
    "host": "0.0.0.0",
    "port": 3000,
    "loaders": ["fabric", "quilt"],
    "bundle_dir": "temp-download-all",
    "bundle_route": "temp-download-all",
    "bundle_retention_seconds": 120,
    "bundle_timeout_seconds": 600,
    "download_workers": 4,
    "modrinth_api_url": "https://api.modrinth.com",
    "request_timeout_seconds": 30,
    "user_agent": f"mr-modpack/{__version__}",
    "contact": None,
    "log_file": None,
    "log_level": "INFO",
}


def get_home() -> str:
    """Working directory for config.json and bundles."""
    return os.path.abspath(os.environ.get("MRMODPACK_HOME") or os.getcwd())


def get_config_path(home: Optional[str] = None) -> str:
    return os.path.join(home or get_home(), "config.json")


def get_config(home: Optional[str] = None) -> Dict[str, Any]:
    """Load config.json and fill in missing defaults."""
    home = home or get_home()
    path = get_config_path(home)
    cfg = {}
    if os.path.exists(path):
        with open(path) as f:
            cfg = json.load(f)
        log.info(f"[CONFIG] Loaded {path}")

    for k, v in DEFAULTS.items():
        if k not in cfg:
            cfg[k] = v

    if os.environ.get("PORT"):
        cfg["port"] = int(os.environ["PORT"])

    if not os.path.isabs(cfg["bundle_dir"]):
        cfg["bundle_dir"] = os.path.join(home, cfg["bundle_dir"])
    return cfg
