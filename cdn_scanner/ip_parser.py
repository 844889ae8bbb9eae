"""
CIDR range parsing and expansion
"""

import ipaddress
import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

from .exceptions import EmptyWorklistError, MalformedRangeError, RangeTooLargeError

logger = logging.getLogger(__name__)

# /16 and larger blocks are refused unless the limit is raised explicitly
DEFAULT_MAX_ADDRESSES = 65536

_CIDR_RE = re.compile(r'^(\d{1,3}(?:\.\d{1,3}){3})(?:/(\d{1,2}))?$')


@dataclass(frozen=True)
class AddressRange:
    """Parsed IPv4 CIDR block"""
    text: str
    base: ipaddress.IPv4Address
    prefix_length: int

    @property
    def size(self) -> int:
        return 1 << (32 - self.prefix_length)

    @property
    def first(self) -> ipaddress.IPv4Address:
        """Network address"""
        mask = (0xFFFFFFFF << (32 - self.prefix_length)) & 0xFFFFFFFF
        return ipaddress.IPv4Address(int(self.base) & mask)

    @property
    def last(self) -> ipaddress.IPv4Address:
        """Broadcast address"""
        return ipaddress.IPv4Address(int(self.first) + self.size - 1)

    def addresses(self) -> Iterator[ipaddress.IPv4Address]:
        start = int(self.first)
        for value in range(start, start + self.size):
            yield ipaddress.IPv4Address(value)

    def __str__(self) -> str:
        return f"{self.first}/{self.prefix_length}"


class RangeExpander:
    """Turns CIDR strings into ordered address lists"""

    @staticmethod
    def parse_range(text: str) -> AddressRange:
        """
        Parse one CIDR string

        Args:
            text: Range in "A.B.C.D/N" form, a bare address is taken as /32

        Returns:
            Parsed range

        Raises:
            MalformedRangeError: if the string is not a valid IPv4 CIDR block
        """
        if not isinstance(text, str):
            raise MalformedRangeError(repr(text), "not a string")

        candidate = re.sub(r'\s*/\s*', '/', text.strip())
        match = _CIDR_RE.match(candidate)
        if not match:
            raise MalformedRangeError(text, "expected A.B.C.D/N")

        address, prefix = match.group(1), match.group(2)
        prefix_length = 32 if prefix is None else int(prefix)
        if prefix_length > 32:
            raise MalformedRangeError(text, f"prefix /{prefix_length} is outside 0-32")

        octets = address.split('.')
        for octet in octets:
            if int(octet) > 255:
                raise MalformedRangeError(text, f"octet {octet} is outside 0-255")

        # ipaddress rejects leading zeros, normalise them away first
        base = ipaddress.IPv4Address('.'.join(str(int(o)) for o in octets))
        return AddressRange(text=text, base=base, prefix_length=prefix_length)

    @classmethod
    def parse_ranges(cls, ranges: Sequence[str]) -> List[AddressRange]:
        """Parse every range before anything is expanded; the first bad entry aborts"""
        return [cls.parse_range(text) for text in ranges]

    @classmethod
    def count(cls, ranges: Sequence[str]) -> int:
        return sum(r.size for r in cls.parse_ranges(ranges))

    @classmethod
    def expand(cls, ranges: Sequence[str],
               max_addresses: Optional[int] = DEFAULT_MAX_ADDRESSES) -> List[ipaddress.IPv4Address]:
        """
        Expand CIDR strings into one address list

        Ranges are expanded independently and concatenated in input order.
        Overlapping ranges are not deduplicated, so an address listed twice
        is probed twice.

        Args:
            ranges: CIDR strings
            max_addresses: Upper bound on the total number of addresses (None disables it)

        Returns:
            Addresses, ascending within each range

        Raises:
            MalformedRangeError: an entry failed validation, nothing is expanded
            RangeTooLargeError: the total exceeds max_addresses
            EmptyWorklistError: no ranges were given
        """
        parsed = cls.parse_ranges(ranges)
        if not parsed:
            raise EmptyWorklistError("No address ranges to scan")

        total = 0
        for address_range in parsed:
            total += address_range.size
            if max_addresses is not None and total > max_addresses:
                raise RangeTooLargeError(total, max_addresses, address_range.text)

        addresses: List[ipaddress.IPv4Address] = []
        for address_range in parsed:
            addresses.extend(address_range.addresses())
            logger.debug(f"Range {address_range} expanded to {address_range.size} addresses")

        return addresses

    @staticmethod
    def split_text(text: str) -> List[str]:
        """
        Split a free-text block into range strings

        One range per line; blank lines and # comments are skipped,
        comma separated entries on one line are allowed.
        """
        ranges = []
        for line in text.splitlines():
            line = line.split('#', 1)[0].strip()
            if not line:
                continue
            for part in line.split(','):
                part = part.strip()
                if part:
                    ranges.append(part)
        return ranges

    @classmethod
    def parse_file(cls, filepath: str) -> List[str]:
        """
        Read range strings from a file

        Args:
            filepath: Path to a text file with one range per line

        Returns:
            Range strings in file order
        """
        path = Path(filepath)
        with open(path, 'r', encoding='utf-8') as f:
            ranges = cls.split_text(f.read())

        logger.info(f"Loaded {len(ranges)} ranges from {path}")
        return ranges
