from datetime import datetime

from conftest import FakeRunner
from ufw_configurator.report import render_report, write_report


def test_render_report_lists_every_network(facts):
    body = render_report(
        facts,
        status_verbose="Status: active",
        status_numbered="[ 1] 22/tcp ALLOW IN Anywhere",
        interfaces="3: wlan0: <UP>\n    inet 192.168.1.41/24",
        generated=datetime(2025, 1, 2, 3, 4, 5),
        host="devbox",
        user="sam",
    )
    lines = body.splitlines()

    assert lines[0] == "UFW Configuration Report"
    assert "Generated: 2025-01-02 03:04:05" in lines
    assert "Host: devbox" in lines
    assert "Primary Interface: wlan0" in lines
    assert "Local IP: 192.168.1.41/24" in lines
    assert "Local Network: 192.168.1.0/24" in lines
    assert "Tailscale IP: 100.101.102.103" in lines
    assert "Docker Network: 172.17.0.0/16" in lines
    assert "Custom Docker Network: 172.18.0.0/16 (devstack_default)" in lines
    assert "[ 1] 22/tcp ALLOW IN Anywhere" in lines


def test_write_report_creates_timestamped_file(config, facts):
    runner = FakeRunner(
        {
            ("ufw", "status", "verbose"): (0, "Status: active\nLogging: on (medium)\n"),
            ("ufw", "status", "numbered"): (0, "[ 1] 22/tcp ALLOW IN Anywhere\n"),
            ("ip", "addr", "show"): (
                0,
                "1: lo: <LOOPBACK,UP>\n    link/loopback 00:00\n    inet 127.0.0.1/8 scope host lo\n",
            ),
        }
    )
    path = write_report(runner, config, facts, "20250102-030405")

    assert path == config.report_dir / "ufw-config-report-20250102-030405.txt"
    text = path.read_text()
    assert "Logging: on (medium)" in text
    assert "link/loopback" not in text
    assert "inet 127.0.0.1/8 scope host lo" in text


def test_write_report_tolerates_missing_status(config, facts):
    path = write_report(FakeRunner(), config, facts, "20250102-030405")
    assert "(unavailable: ufw status verbose)" in path.read_text()
