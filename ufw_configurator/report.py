# ----------------------------------------------------------------
# Configuration Report
# ----------------------------------------------------------------
from datetime import datetime
from pathlib import Path
from typing import List, Optional

from .commands import CommandRunner
from .config import HOSTNAME, USERNAME, VERSION, Config
from .errors import CommandError
from .logger import get_logger
from .network import NetworkFacts


def render_report(
    facts: NetworkFacts,
    status_verbose: str,
    status_numbered: str,
    interfaces: str,
    generated: Optional[datetime] = None,
    host: str = HOSTNAME,
    user: str = USERNAME,
) -> str:
    """Render the plaintext report body."""
    generated = generated or datetime.now()
    lines: List[str] = [
        "UFW Configuration Report",
        f"Generated: {generated.strftime('%Y-%m-%d %H:%M:%S')}",
        f"Script Version: {VERSION}",
        f"Host: {host}",
        f"User: {user}",
        "",
        "Network Configuration:",
        f"Primary Interface: {facts.interface}",
        f"Local IP: {facts.address}",
        f"Local Network: {facts.network}",
    ]
    if facts.tailscale_address is not None:
        lines.append(f"Tailscale IP: {facts.tailscale_address}")
    if facts.docker_bridge_network is not None:
        lines.append(f"Docker Network: {facts.docker_bridge_network}")
    for net in facts.custom_docker_networks:
        lines.append(f"Custom Docker Network: {net.subnet} ({net.name})")
    lines += [
        "",
        "UFW Configuration:",
        status_verbose.rstrip(),
        "",
        "UFW Rules (numbered):",
        status_numbered.rstrip(),
        "",
        "Active Network Interfaces:",
        interfaces.rstrip(),
        "",
    ]
    return "\n".join(lines)


def _interface_summary(ip_addr_output: str) -> str:
    """Keep only the interface header and inet lines of `ip addr show`."""
    kept = []
    for line in ip_addr_output.splitlines():
        stripped = line.lstrip()
        if (line[:1].isdigit() and ":" in line) or stripped.startswith("inet "):
            kept.append(line)
    return "\n".join(kept)


def write_report(
    runner: CommandRunner, config: Config, facts: NetworkFacts, stamp: str
) -> Path:
    """Collect live status output and write the report file."""
    logger = get_logger()

    def capture(cmd: List[str], privileged: bool = False) -> str:
        try:
            return runner.output(cmd, privileged=privileged)
        except CommandError as e:
            logger.debug(f"Report: {e}")
            return f"(unavailable: {' '.join(cmd)})"

    body = render_report(
        facts,
        status_verbose=capture([config.ufw_binary, "status", "verbose"], privileged=True),
        status_numbered=capture([config.ufw_binary, "status", "numbered"], privileged=True),
        interfaces=_interface_summary(capture(["ip", "addr", "show"])),
    )
    report_file = config.report_file(stamp)
    report_file.parent.mkdir(parents=True, exist_ok=True)
    report_file.write_text(body)
    logger.info(f"Detailed report saved to: {report_file}")
    return report_file
