#!/usr/bin/env python3
"""
UFW Configurator
--------------------------------------------------

Rebuilds the UFW rule set from the live network configuration:
  • Detects the primary LAN interface and network
  • Detects Tailscale and Docker (bridge and custom) networks
  • Validates the networks before touching the firewall
  • Backs up /etc/ufw, resets UFW and applies a fixed rule set
  • Verifies the result and writes a plaintext report

Run as root or with a cached sudo ticket (sudo -v).

Version: 2.1.0
"""

import signal
import sys
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Optional

import click
from rich.markup import escape
from rich.traceback import install as install_rich_traceback

from .applier import FirewallApplier
from .backup import BackupManager
from .commands import CommandRunner
from .config import USERNAME, VERSION, Config, timestamp
from .errors import (
    EXIT_FAILURE,
    EXIT_INTERRUPTED,
    EXIT_SUCCESS,
    CommandError,
    MutationError,
    UfwConfiguratorError,
)
from .logger import get_logger, setup_logger
from .network import NetworkFacts, detect_network_facts
from .preflight import check_prerequisites
from .prompts import confirm, timed_confirm
from .report import write_report
from .rules import build_plan
from .ui import (
    NordColors,
    checks_table,
    console,
    create_header,
    display_panel,
    facts_table,
    plan_table,
    print_error,
    print_message,
    print_section,
    print_success,
    print_warning,
)
from .validation import validate_networks
from .verification import ConfigurationVerifier, has_fatal_failure


# ----------------------------------------------------------------
# Summary Output
# ----------------------------------------------------------------
def print_configuration_summary(facts: NetworkFacts, config: Config) -> None:
    print_section("Configuration Summary")
    console.print(facts_table(facts))
    console.print("The following UFW rules will be configured:")
    print_message(f"Local network access: {facts.network}")
    if facts.docker_bridge_network is not None:
        print_message(f"Docker bridge access: {facts.docker_bridge_network}")
    for net in facts.custom_docker_networks:
        print_message(f"Custom Docker network: {net.subnet}")
    print_message("SSH access with rate limiting")
    named = ", ".join(str(port) for port, _ in config.dev_named_ports)
    print_message(
        f"Development ports ({config.dev_port_range.replace(':', '-')}, {named}) "
        "from allowed networks"
    )
    if facts.tailscale_address is not None:
        print_message(f"Tailscale traffic ({facts.tailscale_address}) will bypass UFW")
    console.print()


def print_security_summary(facts: NetworkFacts) -> None:
    print_section("Security Summary")
    print_success("Default deny incoming policy active")
    print_success("SSH access allowed with rate limiting")
    print_success(f"Local network ({facts.network}) access configured")
    if facts.docker_bridge_network is not None:
        print_success(f"Docker bridge ({facts.docker_bridge_network}) access configured")
    if facts.custom_docker_networks:
        print_success(
            f"{len(facts.custom_docker_networks)} custom Docker networks configured"
        )
    print_success("Development ports accessible from allowed networks")
    if facts.tailscale_address is not None:
        print_success(
            f"Tailscale traffic ({facts.tailscale_address}) bypasses UFW (handled by ts-input)"
        )
    print_success("Comprehensive logging enabled")

    print_section("Testing & Monitoring")
    console.print("Test SSH access:")
    console.print(f"  Local: ssh {USERNAME}@{facts.local_ip}")
    if facts.tailscale_address is not None:
        console.print(f"  Tailscale: ssh {USERNAME}@{facts.tailscale_address}")
    console.print("Monitor UFW activity:")
    console.print("  sudo tail -f /var/log/ufw.log")
    console.print("  sudo ufw status numbered")
    console.print("View configuration:")
    console.print("  sudo iptables -L -n -v")


# ----------------------------------------------------------------
# Workflow
# ----------------------------------------------------------------
def run(
    config: Config,
    runner: CommandRunner,
    stamp: str,
    assume_yes: bool = False,
    dry_run: bool = False,
    allow_public: bool = False,
    verify: bool = True,
    confirm_fn: Callable[[str], bool] = confirm,
    final_confirm_fn: Optional[Callable[[str], bool]] = None,
) -> int:
    """
    Run the whole configuration workflow and return the exit code.

    Raises UfwConfiguratorError subclasses for detection, validation and
    mutation failures; no firewall command runs before validation passes.
    """
    logger = get_logger()
    if final_confirm_fn is None:
        def final_confirm_fn(message: str) -> bool:
            return timed_confirm(message, timeout=config.confirm_timeout, default=True)

    print_section("Checking Prerequisites")
    if dry_run:
        logger.info("Dry run: skipping privilege checks")
    else:
        check_prerequisites(runner, config)

    print_section("Detecting Network Configuration")
    facts = detect_network_facts(runner, config)

    print_section("Validating Network Configuration")
    validate_networks(facts, confirm=confirm_fn, allow_public=allow_public)

    print_configuration_summary(facts, config)
    plan = build_plan(facts, config)

    if dry_run:
        console.print(plan_table(plan))
        print_warning("Dry run: no changes were made")
        return EXIT_SUCCESS

    if not assume_yes and not final_confirm_fn("Proceed with UFW configuration?"):
        print_message("Configuration cancelled by user", NordColors.FROST_3)
        logger.info("Configuration cancelled by user")
        return EXIT_SUCCESS

    print_section("Configuring UFW Rules")
    backups = BackupManager(runner, config)
    snapshot = FirewallApplier(runner, config, backups).apply(plan)

    if verify:
        print_section("Testing Configuration")
        results = ConfigurationVerifier(runner, config).run_all()
        console.print(checks_table(results))
        if has_fatal_failure(results):
            logger.error("Verification failed, restoring previous configuration")
            try:
                backups.restore(snapshot)
            except CommandError as e:
                logger.error(f"Restore failed: {e}")
            raise MutationError("UFW is not active after configuration")

    print_section("Configuration Complete")
    try:
        console.print(
            runner.output([config.ufw_binary, "status", "numbered"], privileged=True)
        )
    except CommandError as e:
        logger.warning(f"Could not read final UFW status: {e}")

    print_security_summary(facts)

    print_section("Generating Configuration Report")
    try:
        write_report(runner, config, facts, stamp)
    except OSError as e:
        logger.warning(f"Could not write report: {e}")

    display_panel(
        "UFW configuration completed successfully!\n"
        f"Backup location: {escape(str(snapshot.path))}",
        NordColors.GREEN,
        "Success",
    )
    return EXIT_SUCCESS


# ----------------------------------------------------------------
# Signal Handling
# ----------------------------------------------------------------
def make_signal_handler(log_file: Path) -> Callable[[int, Any], None]:
    def signal_handler(sig: int, frame: Any) -> None:
        sig_name = signal.Signals(sig).name
        print_warning(f"Script interrupted by {sig_name}. Check log: {log_file}")
        get_logger().warning(f"Interrupted by {sig_name}")
        sys.exit(EXIT_INTERRUPTED)

    return signal_handler


# ----------------------------------------------------------------
# Main CLI Entry Point with click
# ----------------------------------------------------------------
@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.option("-y", "--yes", "assume_yes", is_flag=True, help="Skip the final confirmation prompt")
@click.option("--dry-run", is_flag=True, help="Detect and print the plan without changing UFW")
@click.option("--allow-public", is_flag=True, help="Accept a non-private LAN network without asking")
@click.option("--no-verify", is_flag=True, help="Skip post-apply verification")
@click.option("--debug", is_flag=True, help="Enable debug logging on the console")
@click.option(
    "--log-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for the timestamped log file",
)
@click.option(
    "--report-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Directory for the timestamped report",
)
@click.option(
    "--ufw-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="UFW configuration directory to back up",
)
@click.version_option(VERSION, prog_name="ufw-configurator")
def main(
    assume_yes: bool,
    dry_run: bool,
    allow_public: bool,
    no_verify: bool,
    debug: bool,
    log_dir: Optional[Path],
    report_dir: Optional[Path],
    ufw_dir: Optional[Path],
) -> None:
    """Configure UFW for the detected LAN, Docker and Tailscale networks."""
    install_rich_traceback(show_locals=False)

    try:
        config = Config.from_env()
    except ValueError as e:
        print_error(str(e))
        sys.exit(EXIT_FAILURE)
    overrides = {
        key: value
        for key, value in (("log_dir", log_dir), ("report_dir", report_dir), ("ufw_dir", ufw_dir))
        if value is not None
    }
    config = replace(config, debug=config.debug or debug, **overrides)

    stamp = timestamp()
    log_file = config.log_file(stamp)
    logger = setup_logger(log_file, debug=config.debug)

    handler = make_signal_handler(log_file)
    signal.signal(signal.SIGINT, handler)
    signal.signal(signal.SIGTERM, handler)

    console.print(create_header())
    print_message("Starting comprehensive UFW configuration...")
    print_message(f"Log file: {log_file}")

    runner = CommandRunner(default_timeout=config.command_timeout)
    try:
        code = run(
            config,
            runner,
            stamp,
            assume_yes=assume_yes,
            dry_run=dry_run,
            allow_public=allow_public,
            verify=not no_verify,
        )
    except MutationError as e:
        print_error(str(e))
        if e.rollback_errors:
            display_panel(
                "\n".join(f"• {escape(failure)}" for failure in e.rollback_errors),
                NordColors.YELLOW,
                "Rollback incomplete",
            )
        logger.error(f"{e}. Check log: {log_file}")
        sys.exit(e.exit_code)
    except UfwConfiguratorError as e:
        print_error(str(e))
        logger.error(f"{type(e).__name__}: {e}")
        sys.exit(e.exit_code)

    print_message(f"Log file: {log_file}")
    sys.exit(code)


if __name__ == "__main__":
    main()
