"""
UFW Configurator
--------------------------------------------------

Dynamic UFW configuration for hosts running Docker and Tailscale.
Detects the LAN, Docker and Tailscale networks at runtime, validates them,
snapshots the current firewall state and rebuilds the rule set from scratch.

Version: 2.1.0
"""

from .config import APP_NAME, VERSION

__version__ = VERSION

__all__ = ["APP_NAME", "VERSION", "__version__"]
