"""Version identifier for the scalebar overlay."""
from __future__ import annotations

import os
from typing import Optional

__all__ = ["__version__", "is_dev_build", "DEV_MODE_ENV_VAR"]

__version__ = "0.3.0-dev"
DEV_MODE_ENV_VAR = "SCALEBAR_OVERLAY_DEV_MODE"

_ON = {"1", "true", "yes", "on"}
_OFF = {"0", "false", "no", "off"}


def is_dev_build(version: Optional[str] = None) -> bool:
    """True for ``-dev`` and ``.devN`` versions; the dev-mode env var overrides either way."""
    override = os.getenv(DEV_MODE_ENV_VAR, "").strip().lower()
    if override in _ON:
        return True
    if override in _OFF:
        return False
    identifier = (version or __version__).strip().lower()
    return identifier.endswith("-dev") or ".dev" in identifier
