# ----------------------------------------------------------------
# Configuration & Constants
# ----------------------------------------------------------------
import os
import socket
from dataclasses import dataclass, field, replace
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple

APP_NAME: str = "UFW Configurator"
APP_SUBTITLE: str = "Dynamic Firewall Setup"
VERSION: str = "2.1.0"
HOSTNAME: str = socket.gethostname()
USERNAME: str = os.environ.get("SUDO_USER") or os.environ.get("USER", "unknown")

ENV_PREFIX: str = "UFW_CONFIGURATOR_"
TIMESTAMP_FORMAT: str = "%Y%m%d-%H%M%S"

# Address used to find the interface that carries outbound traffic
ROUTE_PROBE_ADDRESS: str = "8.8.8.8"

# Tailscale hands out addresses from the CGNAT block
TAILSCALE_RANGE: str = "100.64.0.0/10"

# Docker networks that never carry a user-defined subnet
DOCKER_BUILTIN_NETWORKS: Tuple[str, ...] = ("bridge", "host", "none")
DOCKER_BRIDGE_INTERFACE: str = "docker0"

UFW_FILES_TO_BACKUP: Tuple[str, ...] = (
    "user.rules",
    "user6.rules",
    "before.rules",
    "after.rules",
    "ufw.conf",
)

REQUIRED_TOOLS: Tuple[str, ...] = ("ip",)


def timestamp(now: Optional[datetime] = None) -> str:
    """Return the timestamp suffix used for logs, reports and backups."""
    return (now or datetime.now()).strftime(TIMESTAMP_FORMAT)


@dataclass
class Config:
    """Runtime configuration for a single configurator run."""

    ufw_binary: str = "ufw"
    ufw_dir: Path = field(default_factory=lambda: Path("/etc/ufw"))
    log_dir: Path = field(default_factory=lambda: Path("/tmp"))
    report_dir: Path = field(default_factory=lambda: Path("/tmp"))
    backup_location_file: Path = field(
        default_factory=lambda: Path("/tmp/ufw-backup-location.txt")
    )

    route_probe_address: str = ROUTE_PROBE_ADDRESS
    tailscale_range: str = TAILSCALE_RANGE
    docker_bridge_interface: str = DOCKER_BRIDGE_INTERFACE
    max_custom_docker_networks: int = 10

    # Rule content
    ssh_service: str = "ssh"
    dev_port_range: str = "3000:8999"
    dev_named_ports: List[Tuple[int, str]] = field(
        default_factory=lambda: [(5173, "Vite dev server"), (8080, "Alt dev server")]
    )
    logging_level: str = "medium"

    # Timeouts (seconds)
    command_timeout: int = 60
    tailscale_timeout: int = 5
    docker_timeout: int = 10
    confirm_timeout: int = 30

    debug: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Config":
        """
        Build a Config from defaults plus UFW_CONFIGURATOR_* overrides.

        The plain DEBUG=1 variable is honoured as well.
        """
        env = os.environ if environ is None else environ
        config = cls()
        overrides: Dict[str, Any] = {}

        for name in ("ufw_dir", "log_dir", "report_dir", "backup_location_file"):
            value = env.get(ENV_PREFIX + name.upper())
            if value:
                overrides[name] = Path(value).expanduser()

        for name in ("ufw_binary", "route_probe_address", "logging_level"):
            value = env.get(ENV_PREFIX + name.upper())
            if value:
                overrides[name] = value

        for name in (
            "command_timeout",
            "tailscale_timeout",
            "docker_timeout",
            "confirm_timeout",
        ):
            value = env.get(ENV_PREFIX + name.upper())
            if value:
                try:
                    overrides[name] = int(value)
                except ValueError:
                    raise ValueError(
                        f"{ENV_PREFIX + name.upper()} must be an integer, got {value!r}"
                    ) from None

        debug = env.get(ENV_PREFIX + "DEBUG", env.get("DEBUG", "0"))
        overrides["debug"] = debug.strip().lower() in ("1", "true", "yes", "on")

        return replace(config, **overrides)

    def log_file(self, stamp: str) -> Path:
        return self.log_dir / f"ufw-setup-{stamp}.log"

    def report_file(self, stamp: str) -> Path:
        return self.report_dir / f"ufw-config-report-{stamp}.txt"

    def backup_dir(self, stamp: str) -> Path:
        return self.ufw_dir / f"backup-{stamp}"
