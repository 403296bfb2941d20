"""Contains utility functions for network stuff"""

from netaddr import IPNetwork
from netaddr.core import AddrFormatError


def is_cidr(route):
    """Checks if a route is a valid IPv4 or IPv6 network in CIDR notation"""

    if not isinstance(route, str) or "/" not in route:
        return False
    try:
        IPNetwork(route)
    except (AddrFormatError, ValueError):
        return False
    return True


def normalize_routes(routes):
    """
    Return the routes in canonical CIDR form, e.g. ``10.0.0.7/24`` becomes
    ``10.0.0.0/24``. Duplicates are removed, order is kept.

    Raises:
        ValueError if one of the routes isn't a CIDR network.
    """
    result = []
    for route in routes:
        if not is_cidr(route):
            raise ValueError(f"'{route}' is not a valid CIDR route")
        net = str(IPNetwork(route).cidr)
        if net not in result:
            result.append(net)
    return result
