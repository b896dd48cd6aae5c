# ----------------------------------------------------------------
# Post-apply Verification
# ----------------------------------------------------------------
import re
from dataclasses import dataclass
from typing import List

from .commands import CommandRunner
from .config import Config
from .errors import CommandError
from .logger import get_logger

NUMBERED_RULE = re.compile(r"^\[\s*\d+\]")


@dataclass(frozen=True)
class CheckResult:
    name: str
    passed: bool
    detail: str = ""
    fatal: bool = False


def count_numbered_rules(status_numbered: str) -> int:
    """Count rule lines in `ufw status numbered` output."""
    return sum(1 for line in status_numbered.splitlines() if NUMBERED_RULE.match(line))


class ConfigurationVerifier:
    def __init__(self, runner: CommandRunner, config: Config):
        self.runner = runner
        self.config = config
        self.logger = get_logger()

    def run_all(self) -> List[CheckResult]:
        results = [
            self.check_active(),
            self.check_rule_count(),
            self.check_connectivity(),
            self.check_iptables(),
        ]
        for result in results:
            log = self.logger.info if result.passed else (
                self.logger.error if result.fatal else self.logger.warning
            )
            log(f"{result.name}: {result.detail}")
        return results

    def check_active(self) -> CheckResult:
        try:
            status = self.runner.output([self.config.ufw_binary, "status"], privileged=True)
        except CommandError as e:
            return CheckResult("UFW status", False, str(e), fatal=True)
        if "Status: active" in status:
            return CheckResult("UFW status", True, "UFW is active")
        return CheckResult("UFW status", False, "UFW is not active", fatal=True)

    def check_rule_count(self) -> CheckResult:
        try:
            listing = self.runner.output(
                [self.config.ufw_binary, "status", "numbered"], privileged=True
            )
        except CommandError as e:
            return CheckResult("Rules", False, str(e))
        count = count_numbered_rules(listing)
        return CheckResult("Rules", count > 0, f"{count} UFW rules configured")

    def check_connectivity(self) -> CheckResult:
        ok = self.runner.succeeds(
            ["ping", "-c1", "-W2", self.config.route_probe_address], timeout=10
        )
        detail = "Internet connectivity working" if ok else "Internet connectivity test failed"
        return CheckResult("Connectivity", ok, detail)

    def check_iptables(self) -> CheckResult:
        try:
            listing = self.runner.output(["iptables", "-L"], privileged=True)
        except CommandError as e:
            return CheckResult("iptables", False, str(e))
        if "REJECT" in listing or "DROP" in listing:
            return CheckResult("iptables", True, "Firewall rules are active in iptables")
        return CheckResult("iptables", False, "No blocking rules visible in iptables")


def has_fatal_failure(results: List[CheckResult]) -> bool:
    return any(not r.passed and r.fatal for r in results)
