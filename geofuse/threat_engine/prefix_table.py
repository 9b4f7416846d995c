"""Constant-time string prefix membership for static IP range tables"""

from typing import Iterable, Iterator, Optional


class PrefixTable:
    """Set of textual address prefixes such as ``"185.220."`` or ``"2001:4860:"``.

    Prefixes are grouped by length, so a lookup costs one hash lookup per
    distinct prefix length regardless of how many prefixes the table holds.
    Matching is case-insensitive (IPv6 hex digits).
    """

    def __init__(self, prefixes: Iterable[str] = ()):
        self._prefixes = set()
        self._lengths = []
        for prefix in prefixes:
            self.add(prefix)

    def add(self, prefix: str):
        prefix = prefix.strip().lower()
        if not prefix:
            raise ValueError("Empty prefix")
        self._prefixes.add(prefix)
        if len(prefix) not in self._lengths:
            self._lengths.append(len(prefix))
            # Longest first so match() reports the most specific prefix
            self._lengths.sort(reverse=True)

    def match(self, value: Optional[str]) -> Optional[str]:
        """Most specific prefix of ``value`` in the table, or None"""
        if not value:
            return None
        value = value.lower()
        for length in self._lengths:
            if length <= len(value) and value[:length] in self._prefixes:
                return value[:length]
        return None

    def __contains__(self, value: Optional[str]) -> bool:
        return self.match(value) is not None

    def __iter__(self) -> Iterator[str]:
        return iter(sorted(self._prefixes))

    def __len__(self) -> int:
        return len(self._prefixes)

    def __repr__(self) -> str:
        return f"PrefixTable({len(self)} prefixes)"
