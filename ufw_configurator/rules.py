"""
Firewall plan construction.

build_plan turns NetworkFacts into the ordered list of ufw invocations that
rebuild the rule set from a clean reset. It is a pure function: identical
facts and config always give an identical plan.
"""

import shlex
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .config import Config
from .network import NetworkFacts

RESET = "reset"
DEFAULT = "default"
RULE = "rule"
LOGGING = "logging"
ENABLE = "enable"


@dataclass(frozen=True)
class FirewallOperation:
    kind: str
    args: Tuple[str, ...]
    description: str
    undo_args: Optional[Tuple[str, ...]] = None

    def command(self, ufw_binary: str = "ufw") -> List[str]:
        return [ufw_binary] + list(self.args)

    def undo_command(self, ufw_binary: str = "ufw") -> Optional[List[str]]:
        if self.undo_args is None:
            return None
        return [ufw_binary] + list(self.undo_args)

    def command_line(self, ufw_binary: str = "ufw") -> str:
        return " ".join(shlex.quote(part) for part in self.command(ufw_binary))


@dataclass(frozen=True)
class FirewallPlan:
    facts: NetworkFacts
    operations: Tuple[FirewallOperation, ...]

    def rules(self) -> List[FirewallOperation]:
        return [op for op in self.operations if op.kind == RULE]

    def __len__(self) -> int:
        return len(self.operations)


def _rule(spec: List[str], comment: str, description: str) -> FirewallOperation:
    # ufw accepts the rule spec without its comment when deleting
    return FirewallOperation(
        kind=RULE,
        args=tuple(spec + ["comment", comment]),
        description=description,
        undo_args=tuple(["delete"] + spec),
    )


def _port_rule(source: str, port: str, comment: str, description: str) -> FirewallOperation:
    return _rule(
        ["allow", "from", source, "to", "any", "port", port, "proto", "tcp"],
        comment,
        description,
    )


def build_plan(facts: NetworkFacts, config: Config) -> FirewallPlan:
    """Build the ordered operation list for the detected networks."""
    lan = str(facts.network)
    bridge = str(facts.docker_bridge_network) if facts.docker_bridge_network else None
    custom = [str(net.subnet) for net in facts.custom_docker_networks]

    ops: List[FirewallOperation] = [
        FirewallOperation(RESET, ("--force", "reset"), "Reset UFW to a clean state"),
        FirewallOperation(DEFAULT, ("default", "deny", "incoming"), "Deny incoming by default"),
        FirewallOperation(DEFAULT, ("default", "allow", "outgoing"), "Allow outgoing by default"),
        FirewallOperation(DEFAULT, ("default", "deny", "forward"), "Deny forwarding by default"),
        _rule(["allow", config.ssh_service], "SSH access", "Allow SSH"),
        _rule(["limit", config.ssh_service], "SSH rate limiting", "Rate-limit SSH"),
        _rule(["allow", "from", lan], f"Local network: {lan}", "Allow local network"),
    ]

    if bridge:
        ops.append(
            _rule(["allow", "from", bridge], f"Docker bridge: {bridge}", "Allow Docker bridge")
        )
    for subnet in custom:
        ops.append(
            _rule(["allow", "from", subnet], f"Docker custom: {subnet}", "Allow Docker network")
        )

    ops.append(
        _port_rule(lan, config.dev_port_range, "Dev servers: LAN", "Dev ports from LAN")
    )
    for port, label in config.dev_named_ports:
        ops.append(_port_rule(lan, str(port), label, f"{label} from LAN"))
    if bridge:
        ops.append(
            _port_rule(
                bridge, config.dev_port_range, "Dev servers: Docker", "Dev ports from Docker bridge"
            )
        )
    for subnet in custom:
        ops.append(
            _port_rule(
                subnet,
                config.dev_port_range,
                f"Dev servers: {subnet}",
                "Dev ports from Docker network",
            )
        )

    ops.append(
        FirewallOperation(
            LOGGING, ("logging", config.logging_level), f"Logging level {config.logging_level}"
        )
    )
    ops.append(FirewallOperation(ENABLE, ("--force", "enable"), "Enable the firewall"))

    return FirewallPlan(facts=facts, operations=tuple(ops))
