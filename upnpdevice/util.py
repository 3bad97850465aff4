import re
import logging
import platform
from urllib.parse import urljoin

import ifaddr

from .const import PACKAGE_NAME, PACKAGE_VERSION, SERVICE_ID_PREFIX, UPNP_VERSION


def _getLogger(name):
    """
    Retrieve a logger instance. Checks if a handler is defined so we avoid the
    'No handlers could be found' message.
    """
    logger = logging.getLogger(name)
    # if not logging.root.handlers:
    #     logger.disabled = 1
    return logger


def resolve_service_id(service_id):
    """
    Expand a bare service name such as 'AVTransport' into the full
    'urn:upnp-org:serviceId:AVTransport' form. Full ids are returned as they are.
    """
    if ":" in service_id:
        return service_id
    return SERVICE_ID_PREFIX + service_id


def absolute_url(base, url):
    """
    Make `url`, as found in a description document, absolute against the URL
    the document was retrieved from.

    >>> absolute_url("http://h:80/desc.xml", "icon.png")
    'http://h:80/icon.png'
    >>> absolute_url("http://h:80/desc.xml", "/x/y")
    'http://h:80/x/y'
    >>> absolute_url("http://h:80/a/desc.xml", "../icon.png")
    'http://h:80/icon.png'
    """
    if not url:
        return ""
    return urljoin(base, url)


def get_addresses_ipv4():
    # Get all adapters on current machine
    adapters = ifaddr.get_adapters()
    # Get the ip from the found adapters
    # Ignore localhost und IPv6 addresses
    return sorted(
        set(
            addr.ip
            for iface in adapters
            for addr in iface.ips
            if addr.is_IPv4 and not addr.ip.startswith("127.")
        )
    )


def get_ipv4_address():
    """
    Pick the local IPv4 address devices should push events to. Falls back to
    the loopback address on hosts without any other interface.
    """
    addresses = get_addresses_ipv4()
    if not addresses:
        return "127.0.0.1"
    return addresses[0]


def default_user_agent():
    return "%s/%s %s %s/%s" % (
        platform.system(),
        platform.release(),
        UPNP_VERSION,
        PACKAGE_NAME,
        PACKAGE_VERSION,
    )


def format_time(seconds):
    """
    Format a number of seconds as the H:MM:SS string used by AVTransport.
    """
    seconds = int(seconds)
    hours, remainder = divmod(seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    return "%d:%02d:%02d" % (hours, minutes, seconds)


def parse_time(value):
    """
    Parse an AVTransport H+:MM:SS[.F+] duration into seconds. Unknown values
    ('NOT_IMPLEMENTED', empty strings) yield 0.
    """
    match = re.match(r"^\s*(\d+):(\d{1,2}):(\d{1,2})(?:\.\d+)?\s*$", value or "")
    if match is None:
        return 0
    hours, minutes, seconds = (int(part) for part in match.groups())
    return hours * 3600 + minutes * 60 + seconds
