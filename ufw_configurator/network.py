"""
Network parameter detection.

Reads live host state through `ip`, `systemctl`, `tailscale` and `docker`
and condenses it into an immutable NetworkFacts record. Only the LAN
interface and its IPv4 address are required; Tailscale and Docker degrade
to "absent" on any failure.
"""

import ipaddress
import json
import re
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from .commands import CommandRunner
from .config import DOCKER_BUILTIN_NETWORKS, Config
from .errors import CommandError, DetectionError
from .logger import get_logger

# Prefix lengths that line up with octet boundaries
OCTET_ALIGNED_PREFIXES: Tuple[int, ...] = (8, 16, 24)

CIDR_PATTERN = re.compile(r"^\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3}/\d{1,2}$")
INET_PATTERN = re.compile(r"^\s*inet\s+(\S+)")


# ----------------------------------------------------------------
# Data Structures
# ----------------------------------------------------------------
@dataclass(frozen=True)
class DockerNetwork:
    name: str
    subnet: ipaddress.IPv4Network


@dataclass(frozen=True)
class NetworkFacts:
    """
    Network facts used to build firewall rules.

    Attributes:
        interface: Interface carrying outbound traffic (e.g. wlan0)
        address: IPv4 address with prefix on that interface
        network: LAN network derived from address
        tailscale_address: Tailscale IPv4 address, if connected
        docker_bridge_address: docker0 address with prefix, if present
        docker_bridge_network: network derived from the docker0 address
        custom_docker_networks: user-defined Docker networks, in listing order
    """

    interface: str
    address: ipaddress.IPv4Interface
    network: ipaddress.IPv4Network
    tailscale_address: Optional[ipaddress.IPv4Address] = None
    docker_bridge_address: Optional[ipaddress.IPv4Interface] = None
    docker_bridge_network: Optional[ipaddress.IPv4Network] = None
    custom_docker_networks: Tuple[DockerNetwork, ...] = field(default_factory=tuple)

    @property
    def local_ip(self) -> ipaddress.IPv4Address:
        return self.address.ip

    @property
    def docker_networks(self) -> List[ipaddress.IPv4Network]:
        """Bridge network first, then custom networks."""
        networks = []
        if self.docker_bridge_network is not None:
            networks.append(self.docker_bridge_network)
        networks.extend(net.subnet for net in self.custom_docker_networks)
        return networks

    @property
    def allowed_networks(self) -> List[ipaddress.IPv4Network]:
        return [self.network] + self.docker_networks


# ----------------------------------------------------------------
# Parsing Helpers
# ----------------------------------------------------------------
def parse_cidr(value: str) -> ipaddress.IPv4Interface:
    """
    Parse an `a.b.c.d/p` string into an IPv4Interface.

    Raises ValueError for anything that is not a well-formed IPv4 CIDR.
    """
    value = value.strip()
    if not CIDR_PATTERN.match(value):
        raise ValueError(f"Not an IPv4 CIDR address: {value!r}")
    return ipaddress.IPv4Interface(value)


def network_for(address: ipaddress.IPv4Interface) -> ipaddress.IPv4Network:
    """Zero the host bits of address according to its prefix length."""
    return address.network


def is_octet_aligned(prefixlen: int) -> bool:
    return prefixlen in OCTET_ALIGNED_PREFIXES


def _token_after(tokens: List[str], keyword: str) -> Optional[str]:
    try:
        return tokens[tokens.index(keyword) + 1]
    except (ValueError, IndexError):
        return None


def parse_route_get(output: str) -> Optional[str]:
    """Return the `dev` of the first line of `ip route get` output."""
    for line in output.splitlines():
        if line.strip():
            return _token_after(line.split(), "dev")
    return None


def parse_default_route(output: str) -> Optional[str]:
    """Return the `dev` of the first default route in `ip route` output."""
    for line in output.splitlines():
        tokens = line.split()
        if tokens and tokens[0] == "default":
            dev = _token_after(tokens, "dev")
            if dev:
                return dev
    return None


def parse_first_inet(output: str, skip_loopback: bool = True) -> Optional[str]:
    """Return the first `inet` address/prefix in `ip addr show` output."""
    for line in output.splitlines():
        m = INET_PATTERN.match(line)
        if not m:
            continue
        value = m.group(1)
        if skip_loopback and value.split("/")[0] == "127.0.0.1":
            continue
        return value
    return None


def parse_docker_network_names(output: str, limit: int = 10) -> List[str]:
    """Names from `docker network ls --format '{{.Name}}'`, minus built-ins."""
    names = []
    for line in output.splitlines():
        name = line.strip()
        if not name or name.upper() == "NAME" or name in DOCKER_BUILTIN_NETWORKS:
            continue
        names.append(name)
        if len(names) >= limit:
            break
    return names


def parse_docker_subnet(inspect_output: str) -> Optional[ipaddress.IPv4Network]:
    """First IPv4 IPAM subnet from `docker network inspect` JSON."""
    try:
        data = json.loads(inspect_output)
    except json.JSONDecodeError:
        return None
    if isinstance(data, dict):
        data = [data]
    if not isinstance(data, list):
        return None

    for entry in data:
        if not isinstance(entry, dict):
            continue
        ipam = entry.get("IPAM") or {}
        for cfg in ipam.get("Config") or []:
            subnet = (cfg or {}).get("Subnet", "")
            try:
                network = ipaddress.ip_network(subnet, strict=False)
            except ValueError:
                continue
            if network.version == 4:
                return network
    return None


def parse_tailscale_ip(output: str) -> Optional[ipaddress.IPv4Address]:
    for line in output.splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            address = ipaddress.ip_address(line)
        except ValueError:
            return None
        return address if address.version == 4 else None
    return None


# ----------------------------------------------------------------
# Detector
# ----------------------------------------------------------------
class NetworkDetector:
    """Derives NetworkFacts from live host state."""

    def __init__(self, runner: CommandRunner, config: Config):
        self.runner = runner
        self.config = config
        self.logger = get_logger()

    def detect(self) -> NetworkFacts:
        interface = self.detect_primary_interface()
        address = self.detect_address(interface)
        network = network_for(address)
        if not is_octet_aligned(address.network.prefixlen):
            self.logger.warning(
                f"Unusual CIDR /{address.network.prefixlen} detected on {interface}, "
                f"using exact network {network}"
            )

        self.logger.info(f"Primary interface: {interface}")
        self.logger.info(f"Local IP: {address}")
        self.logger.info(f"Calculated network: {network}")

        tailscale_address = self.detect_tailscale()
        bridge_address: Optional[ipaddress.IPv4Interface] = None
        bridge_network: Optional[ipaddress.IPv4Network] = None
        custom: Tuple[DockerNetwork, ...] = ()
        if self.docker_active():
            bridge_address = self.detect_docker_bridge()
            if bridge_address is not None:
                bridge_network = network_for(bridge_address)
                self.logger.info(f"Docker bridge: {bridge_address}")
                self.logger.info(f"Docker network: {bridge_network}")
            custom = tuple(self.detect_custom_docker_networks())

        return NetworkFacts(
            interface=interface,
            address=address,
            network=network,
            tailscale_address=tailscale_address,
            docker_bridge_address=bridge_address,
            docker_bridge_network=bridge_network,
            custom_docker_networks=custom,
        )

    def detect_primary_interface(self) -> str:
        self.logger.debug("Detecting primary network interface...")
        interface = None
        try:
            interface = parse_route_get(
                self.runner.output(["ip", "route", "get", self.config.route_probe_address])
            )
        except CommandError as e:
            self.logger.debug(f"Route probe failed: {e}")

        if not interface:
            try:
                interface = parse_default_route(self.runner.output(["ip", "route"]))
            except CommandError as e:
                self.logger.debug(f"Default route lookup failed: {e}")

        if not interface:
            self._log_diagnostics(["ip", "route"], "Available routes")
            raise DetectionError("Could not detect primary network interface")
        return interface

    def detect_address(self, interface: str) -> ipaddress.IPv4Interface:
        raw = None
        try:
            raw = parse_first_inet(self.runner.output(["ip", "addr", "show", interface]))
        except CommandError as e:
            self.logger.debug(f"Address lookup on {interface} failed: {e}")

        if not raw:
            self._log_diagnostics(["ip", "-o", "link", "show"], "Available interfaces")
            raise DetectionError(
                f"Could not detect local IP address on interface {interface}"
            )
        try:
            return parse_cidr(raw)
        except ValueError:
            raise DetectionError(f"Invalid IP format detected: {raw}") from None

    def detect_tailscale(self) -> Optional[ipaddress.IPv4Address]:
        self.logger.debug("Detecting Tailscale configuration...")
        if not self.runner.has_command("tailscale"):
            self.logger.debug("Tailscale not installed")
            return None
        if not self.runner.succeeds(["systemctl", "is-active", "tailscaled"]):
            self.logger.warning("Tailscale installed but service not running")
            return None

        try:
            output = self.runner.output(
                ["tailscale", "ip", "-4"], timeout=self.config.tailscale_timeout
            )
        except CommandError:
            output = ""
        address = parse_tailscale_ip(output)
        if address is None:
            self.logger.warning("Tailscale installed but not connected or authenticated")
            return None

        if address in ipaddress.ip_network(self.config.tailscale_range):
            self.logger.info(f"Tailscale IP: {address} (bypasses UFW)")
        else:
            self.logger.warning(f"Unusual Tailscale IP range: {address}")
        return address

    def docker_active(self) -> bool:
        self.logger.debug("Detecting Docker configuration...")
        if not self.runner.has_command("docker"):
            self.logger.debug("Docker not installed")
            return False
        if self.runner.succeeds(["systemctl", "is-active", "docker"]) or self.runner.succeeds(
            ["pgrep", "dockerd"]
        ):
            self.logger.debug("Docker service is active")
            return True
        self.logger.debug("Docker service not running")
        return False

    def detect_docker_bridge(self) -> Optional[ipaddress.IPv4Interface]:
        try:
            output = self.runner.output(
                ["ip", "addr", "show", self.config.docker_bridge_interface]
            )
        except CommandError:
            self.logger.debug("Docker bridge not found or not configured")
            return None
        raw = parse_first_inet(output, skip_loopback=False)
        if not raw:
            self.logger.debug("Docker bridge has no IPv4 address")
            return None
        try:
            return parse_cidr(raw)
        except ValueError:
            self.logger.warning(f"Ignoring malformed Docker bridge address: {raw}")
            return None

    def detect_custom_docker_networks(self) -> List[DockerNetwork]:
        try:
            listing = self.runner.output(
                ["docker", "network", "ls", "--format", "{{.Name}}"],
                timeout=self.config.docker_timeout,
            )
        except CommandError:
            self.logger.debug("Could not query Docker networks (timeout or permission issue)")
            return []

        self.logger.debug("Checking custom Docker networks...")
        networks: List[DockerNetwork] = []
        for name in parse_docker_network_names(
            listing, limit=self.config.max_custom_docker_networks
        ):
            try:
                inspect = self.runner.output(
                    ["docker", "network", "inspect", name],
                    timeout=self.config.docker_timeout,
                )
            except CommandError:
                self.logger.debug(f"Could not inspect Docker network '{name}'")
                continue
            subnet = parse_docker_subnet(inspect)
            if subnet is None:
                self.logger.debug(f"Docker network '{name}' has no IPv4 subnet")
                continue
            networks.append(DockerNetwork(name=name, subnet=subnet))
            self.logger.info(f"Custom Docker network '{name}': {subnet}")
        return networks

    def _log_diagnostics(self, cmd: List[str], label: str) -> None:
        try:
            output = self.runner.output(cmd)
        except CommandError:
            return
        self.logger.debug(f"{label}:\n{output.rstrip()}")


def detect_network_facts(runner: CommandRunner, config: Config) -> NetworkFacts:
    return NetworkDetector(runner, config).detect()
