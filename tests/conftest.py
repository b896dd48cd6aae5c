"""Shared fixtures: a scripted CommandRunner and canned command output."""

import ipaddress
import logging
import subprocess
from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple, Union

import pytest

from ufw_configurator.commands import CommandRunner
from ufw_configurator.config import Config
from ufw_configurator.errors import CommandError
from ufw_configurator.logger import LOGGER_NAME
from ufw_configurator.network import DockerNetwork, NetworkFacts

ROUTE_GET_WLAN0 = (
    "8.8.8.8 via 192.168.1.1 dev wlan0 src 192.168.1.41 uid 1000 \n"
    "    cache \n"
)
ROUTE_TABLE = (
    "default via 192.168.1.1 dev wlan0 proto dhcp src 192.168.1.41 metric 600 \n"
    "172.17.0.0/16 dev docker0 proto kernel scope link src 172.17.0.1 linkdown \n"
    "192.168.1.0/24 dev wlan0 proto kernel scope link src 192.168.1.41 metric 600 \n"
)
ADDR_WLAN0 = (
    "3: wlan0: <BROADCAST,MULTICAST,UP,LOWER_UP> mtu 1500 qdisc noqueue state UP\n"
    "    link/ether 3c:58:c2:aa:bb:cc brd ff:ff:ff:ff:ff:ff\n"
    "    inet 192.168.1.41/24 brd 192.168.1.255 scope global dynamic noprefixroute wlan0\n"
    "       valid_lft 85734sec preferred_lft 85734sec\n"
    "    inet6 fe80::1c2b:3aff:fe4d:5e6f/64 scope link noprefixroute \n"
)
ADDR_DOCKER0 = (
    "4: docker0: <NO-CARRIER,BROADCAST,MULTICAST,UP> mtu 1500 qdisc noqueue state DOWN\n"
    "    link/ether 02:42:ac:11:00:01 brd ff:ff:ff:ff:ff:ff\n"
    "    inet 172.17.0.1/16 brd 172.17.255.255 scope global docker0\n"
)
DOCKER_NETWORK_LS = "bridge\nhost\nnone\ndevstack_default\n"
DOCKER_INSPECT_DEVSTACK = """[
    {
        "Name": "devstack_default",
        "Driver": "bridge",
        "IPAM": {
            "Driver": "default",
            "Options": null,
            "Config": [
                {"Subnet": "172.18.0.0/16", "Gateway": "172.18.0.1"}
            ]
        }
    }
]"""

Response = Union[Tuple[int, str], Callable[[List[str]], Tuple[int, str]]]


class FakeRunner(CommandRunner):
    """
    CommandRunner that answers from a table instead of spawning processes.

    Keys are command prefixes (tuples); the longest matching prefix wins.
    Unknown commands fail with exit code 127.
    """

    def __init__(
        self,
        responses: Optional[Dict[Tuple[str, ...], Response]] = None,
        commands: Tuple[str, ...] = ("ip", "ufw"),
    ):
        super().__init__(default_timeout=60, sudo=False)
        self.responses: Dict[Tuple[str, ...], Response] = dict(responses or {})
        self.commands = set(commands)
        self.calls: List[List[str]] = []
        self.inputs: List[Optional[str]] = []

    def which(self, name: str) -> Optional[str]:
        return f"/usr/bin/{name}" if name in self.commands else None

    def set(self, prefix: Tuple[str, ...], response: Response) -> None:
        self.responses[prefix] = response

    def _lookup(self, cmd: List[str]) -> Optional[Response]:
        best = None
        for prefix, response in self.responses.items():
            if tuple(cmd[: len(prefix)]) == prefix:
                if best is None or len(prefix) > len(best[0]):
                    best = (prefix, response)
        return best[1] if best else None

    def run(self, cmd, check=True, privileged=False, timeout=None, env=None, input=None):
        self.calls.append(list(cmd))
        self.inputs.append(input)
        response = self._lookup(list(cmd))
        if response is None:
            returncode, stdout = 127, ""
        elif callable(response):
            returncode, stdout = response(list(cmd))
        else:
            returncode, stdout = response
        if returncode == "timeout":
            raise CommandError(list(cmd), timed_out=True)
        if check and returncode != 0:
            raise CommandError(list(cmd), returncode=returncode, stderr="scripted failure")
        return subprocess.CompletedProcess(list(cmd), returncode, stdout, "")

    def called(self, prefix: Tuple[str, ...]) -> List[List[str]]:
        return [c for c in self.calls if tuple(c[: len(prefix)]) == prefix]


@pytest.fixture
def config(tmp_path: Path) -> Config:
    ufw_dir = tmp_path / "etc-ufw"
    ufw_dir.mkdir()
    for name in ("user.rules", "user6.rules", "ufw.conf"):
        (ufw_dir / name).write_text(f"# {name}\n")
    return Config(
        ufw_dir=ufw_dir,
        log_dir=tmp_path / "logs",
        report_dir=tmp_path / "reports",
        backup_location_file=tmp_path / "ufw-backup-location.txt",
    )


@pytest.fixture
def lan_runner() -> FakeRunner:
    """Host on wlan0 with no Docker and no Tailscale installed."""
    return FakeRunner(
        {
            ("ip", "route", "get"): (0, ROUTE_GET_WLAN0),
            ("ip", "route"): (0, ROUTE_TABLE),
            ("ip", "addr", "show", "wlan0"): (0, ADDR_WLAN0),
        }
    )


@pytest.fixture
def docker_runner(lan_runner: FakeRunner) -> FakeRunner:
    """Host on wlan0 with Docker running and one custom network."""
    lan_runner.commands.add("docker")
    lan_runner.set(("systemctl", "is-active", "docker"), (0, "active\n"))
    lan_runner.set(("ip", "addr", "show", "docker0"), (0, ADDR_DOCKER0))
    lan_runner.set(("docker", "network", "ls"), (0, DOCKER_NETWORK_LS))
    lan_runner.set(
        ("docker", "network", "inspect", "devstack_default"), (0, DOCKER_INSPECT_DEVSTACK)
    )
    return lan_runner


@pytest.fixture
def facts() -> NetworkFacts:
    return NetworkFacts(
        interface="wlan0",
        address=ipaddress.IPv4Interface("192.168.1.41/24"),
        network=ipaddress.IPv4Network("192.168.1.0/24"),
        tailscale_address=ipaddress.IPv4Address("100.101.102.103"),
        docker_bridge_address=ipaddress.IPv4Interface("172.17.0.1/16"),
        docker_bridge_network=ipaddress.IPv4Network("172.17.0.0/16"),
        custom_docker_networks=(
            DockerNetwork("devstack_default", ipaddress.IPv4Network("172.18.0.0/16")),
        ),
    )


@pytest.fixture(autouse=True)
def reset_logger():
    """Undo setup_logger so caplog keeps seeing records between tests."""
    yield
    logger = logging.getLogger(LOGGER_NAME)
    for handler in logger.handlers[:]:
        logger.removeHandler(handler)
        handler.close()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
