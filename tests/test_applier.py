import pytest

from conftest import FakeRunner
from ufw_configurator.applier import FirewallApplier, RollbackStack
from ufw_configurator.config import Config
from ufw_configurator.errors import MutationError
from ufw_configurator.rules import build_plan


@pytest.fixture
def ufw_runner():
    return FakeRunner(
        {
            ("mkdir",): (0, ""),
            ("cp",): (0, ""),
            ("tee",): (0, ""),
            ("iptables-save",): (0, ""),
            ("ufw",): (0, ""),
        }
    )


def ufw_mutations(runner):
    return [c[1:] for c in runner.calls if c[0] == "ufw" and c[1:3] != ["status", "verbose"]]


class TestRollbackStack:
    def test_unwinds_newest_first(self):
        order = []
        stack = RollbackStack()
        stack.push("one", lambda: order.append(1))
        stack.push("two", lambda: order.append(2))
        stack.push("three", lambda: order.append(3))

        assert stack.unwind() == []
        assert order == [3, 2, 1]
        assert len(stack) == 0

    def test_failing_step_does_not_stop_the_rest(self):
        order = []

        def boom():
            raise RuntimeError("nope")

        stack = RollbackStack()
        stack.push("first", lambda: order.append("first"))
        stack.push("broken", boom)
        errors = stack.unwind()

        assert order == ["first"]
        assert errors == ["broken: nope"]


class TestFirewallApplier:
    def test_applies_every_operation_in_order(self, ufw_runner, config, facts):
        plan = build_plan(facts, config)
        snapshot = FirewallApplier(ufw_runner, config).apply(plan)

        assert ufw_mutations(ufw_runner) == [list(op.args) for op in plan.operations]
        assert snapshot.path.parent == config.ufw_dir

    def test_snapshot_happens_before_reset(self, ufw_runner, config, facts):
        FirewallApplier(ufw_runner, config).apply(build_plan(facts, config))
        mkdir_at = ufw_runner.calls.index(ufw_runner.called(("mkdir",))[0])
        reset_at = ufw_runner.calls.index(["ufw", "--force", "reset"])
        assert mkdir_at < reset_at

    def test_reapplying_same_facts_runs_identical_commands(self, config, facts):
        first, second = (
            FakeRunner({("mkdir",): (0, ""), ("cp",): (0, ""), ("ufw",): (0, "")})
            for _ in range(2)
        )
        FirewallApplier(first, config).apply(build_plan(facts, config))
        FirewallApplier(second, config).apply(build_plan(facts, config))
        assert ufw_mutations(first) == ufw_mutations(second)

    def test_backup_failure_applies_nothing(self, ufw_runner, config, facts):
        ufw_runner.set(("mkdir",), (1, ""))
        with pytest.raises(MutationError, match="nothing applied"):
            FirewallApplier(ufw_runner, config).apply(build_plan(facts, config))
        assert ufw_mutations(ufw_runner) == []

    def test_failure_rolls_back_in_reverse(self, ufw_runner, config, facts):
        ufw_runner.set(("ufw", "allow", "from", "172.17.0.0/16"), (1, ""))
        plan = build_plan(facts, config)

        with pytest.raises(MutationError, match="172.17.0.0/16"):
            FirewallApplier(ufw_runner, config).apply(plan)

        failed_at = ufw_runner.calls.index(
            ["ufw", "allow", "from", "172.17.0.0/16", "comment", "Docker bridge: 172.17.0.0/16"]
        )
        after = ufw_runner.calls[failed_at + 1:]
        backup_dir = ufw_runner.called(("mkdir",))[0][2]
        assert after == [
            ["ufw", "delete", "allow", "from", "192.168.1.0/24"],
            ["ufw", "delete", "limit", "ssh"],
            ["ufw", "delete", "allow", "ssh"],
            ["cp", "-p", f"{backup_dir}/user.rules", str(config.ufw_dir) + "/"],
            ["cp", "-p", f"{backup_dir}/user6.rules", str(config.ufw_dir) + "/"],
            ["cp", "-p", f"{backup_dir}/ufw.conf", str(config.ufw_dir) + "/"],
            ["ufw", "reload"],
        ]
        assert ["ufw", "--force", "enable"] not in ufw_runner.calls

    def test_rollback_errors_are_reported(self, ufw_runner, config, facts):
        ufw_runner.set(("ufw", "logging"), (1, ""))
        ufw_runner.set(("ufw", "reload"), (1, ""))

        with pytest.raises(MutationError) as excinfo:
            FirewallApplier(ufw_runner, config).apply(build_plan(facts, config))

        assert "logging" in str(excinfo.value)
        assert any("restore snapshot" in e for e in excinfo.value.rollback_errors)

    def test_interrupt_mid_apply_rolls_back(self, ufw_runner, config, facts):
        def interrupt(cmd):
            raise KeyboardInterrupt

        ufw_runner.set(("ufw", "default", "deny", "forward"), interrupt)

        with pytest.raises(KeyboardInterrupt):
            FirewallApplier(ufw_runner, config).apply(build_plan(facts, config))
        assert ufw_runner.calls[-1] == ["ufw", "reload"]

    def test_uses_configured_binary(self, ufw_runner, config, facts):
        ufw_runner.set(("/usr/sbin/ufw",), (0, ""))
        config.ufw_binary = "/usr/sbin/ufw"
        FirewallApplier(ufw_runner, config).apply(build_plan(facts, Config()))
        assert ["/usr/sbin/ufw", "--force", "enable"] in ufw_runner.calls
