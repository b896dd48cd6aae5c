import ipaddress
from typing import Callable, Optional, Tuple

from .errors import NetworkConflictError, UserAbort
from .logger import get_logger
from .network import NetworkFacts

# RFC1918 plus link-local
PRIVATE_RANGES: Tuple[ipaddress.IPv4Network, ...] = (
    ipaddress.IPv4Network("10.0.0.0/8"),
    ipaddress.IPv4Network("172.16.0.0/12"),
    ipaddress.IPv4Network("192.168.0.0/16"),
    ipaddress.IPv4Network("169.254.0.0/16"),
)

ConfirmFn = Callable[[str], bool]


def is_private_network(network: ipaddress.IPv4Network) -> bool:
    """True when the whole network lies inside a private or link-local range."""
    return any(network.subnet_of(private) for private in PRIVATE_RANGES)


def validate_networks(
    facts: NetworkFacts,
    confirm: Optional[ConfirmFn] = None,
    allow_public: bool = False,
) -> None:
    """
    Check detected networks before anything touches the firewall.

    A public LAN network needs confirmation (or allow_public); declining
    raises UserAbort. A LAN network equal to any Docker network raises
    NetworkConflictError. Partial overlaps only warn.
    """
    logger = get_logger()

    if is_private_network(facts.network):
        logger.info(f"Local network is private/local: {facts.network}")
    else:
        logger.warning(f"Local network appears to be public: {facts.network}")
        logger.warning("This may not be suitable for UFW local network rules")
        if not allow_public:
            if confirm is None or not confirm("Continue anyway?"):
                raise UserAbort(
                    f"Refusing to configure rules for public network {facts.network}"
                )

    if facts.docker_bridge_network is not None and facts.network == facts.docker_bridge_network:
        raise NetworkConflictError(
            f"Local network and Docker network overlap: {facts.network}. "
            "This can cause routing issues. Please reconfigure Docker networks."
        )

    for docker_net in facts.custom_docker_networks:
        if facts.network == docker_net.subnet:
            raise NetworkConflictError(
                f"Local network overlaps with Docker network "
                f"'{docker_net.name}' ({docker_net.subnet})"
            )

    for docker_network in facts.docker_networks:
        if docker_network != facts.network and docker_network.overlaps(facts.network):
            logger.warning(
                f"Docker network {docker_network} partially overlaps "
                f"local network {facts.network}"
            )

    logger.info("Network validation completed")
