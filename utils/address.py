from __future__ import annotations

from email.utils import parseaddr

from models.message import Address
from services.errors import AddressParseError


def parse_from_header(value: str | None) -> Address:
    """Parse a From header into display name and address.

    Handles the usual shapes:
      'Jane Doe <jane@example.com>'    -> ('Jane Doe', 'jane@example.com')
      '"Doe, Jane" <jane@example.com>' -> ('Doe, Jane', 'jane@example.com')
      'jane@example.com'               -> ('', 'jane@example.com')

    Raises AddressParseError when no local@domain address can be recovered.
    """
    if not value or not value.strip():
        raise AddressParseError("empty From header")
    display_name, address = parseaddr(value.strip())
    address = address.strip()
    local, sep, domain = address.rpartition("@")
    if not sep or not local or not domain or " " in address:
        raise AddressParseError(f"no usable address in From header {value!r}")
    return Address(display_name=display_name.strip(), address=address)
