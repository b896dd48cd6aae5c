import io
import os

import pytest

from ufw_configurator.prompts import timed_confirm


@pytest.mark.parametrize(
    "reply, default, expected",
    [
        ("\n", True, True),
        ("\n", False, False),
        ("", True, True),
        ("y\n", False, True),
        ("Yes\n", False, True),
        ("n\n", True, False),
        ("maybe\n", True, True),
    ],
)
def test_timed_confirm_replies(reply, default, expected):
    assert timed_confirm("Proceed?", timeout=1, default=default, stream=io.StringIO(reply)) is expected


def test_timed_confirm_defaults_when_nothing_arrives():
    read_fd, write_fd = os.pipe()
    try:
        with os.fdopen(read_fd) as stream:
            assert timed_confirm("Proceed?", timeout=1, default=True, stream=stream) is True
    finally:
        os.close(write_fd)


def test_timed_confirm_reads_a_pipe_reply():
    read_fd, write_fd = os.pipe()
    os.write(write_fd, b"n\n")
    os.close(write_fd)
    with os.fdopen(read_fd) as stream:
        assert timed_confirm("Proceed?", timeout=1, default=True, stream=stream) is False
