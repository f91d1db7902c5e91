# portal/config/__init__.py
from __future__ import annotations

"""
portal.config is a PACKAGE.

- Studio identity lives in: portal.config.studio
- App runtime settings live in: portal.settings
"""

from .studio import studio_context

__all__ = ["studio_context"]
