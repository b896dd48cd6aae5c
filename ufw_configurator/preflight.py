from .commands import CommandRunner
from .config import REQUIRED_TOOLS, Config
from .errors import PrerequisiteError
from .logger import get_logger


def check_prerequisites(runner: CommandRunner, config: Config) -> None:
    """Verify sudo access, ufw and the tools detection depends on."""
    logger = get_logger()

    if runner.use_sudo and not runner.succeeds(["sudo", "-n", "true"]):
        raise PrerequisiteError(
            "This script requires sudo privileges. Please run: sudo -v"
        )

    if not runner.has_command(config.ufw_binary):
        raise PrerequisiteError(
            "UFW is not installed. Install it with your package manager "
            "(e.g. sudo pacman -S ufw, sudo apt install ufw, sudo dnf install ufw)"
        )

    missing = [tool for tool in REQUIRED_TOOLS if not runner.has_command(tool)]
    if missing:
        raise PrerequisiteError(f"Missing required tools: {', '.join(missing)}")

    logger.info("All prerequisites satisfied")
