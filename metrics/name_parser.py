"""Parsing of composite metric names carrying inline tags

A composite name looks like ``requests{region=us,method=GET}``: a base name
followed by a brace-delimited, comma-separated list of ``key=value`` pairs.
Anything that does not match this shape is treated as a plain name.

Base names are never stripped, tag keys and values are.
"""
import re
from typing import Dict, Optional
from .models import ParsedName

_COMPOSITE_NAME = re.compile(r"(?P<base>[^{}]+)\{(?P<tags>[^{}]*)\}")

_RESERVED_IN_BASE = "{}"
_RESERVED_IN_VALUE = "{},"
_RESERVED_IN_KEY = "{},="


class NameTagParser:
    """Splits composite metric names into a base name and tags"""

    def parse(self, raw: str) -> ParsedName:
        """Parse ``raw`` into a ParsedName.

        Never raises. When ``raw`` does not fully match the composite grammar
        the whole string becomes the base name and no tags are returned.
        """
        raw = raw if isinstance(raw, str) else str(raw)

        match = _COMPOSITE_NAME.fullmatch(raw)
        if not match or not match.group("base").strip():
            return ParsedName(base=raw)

        tags = self._parse_tags(match.group("tags"))
        if tags is None:
            return ParsedName(base=raw)

        return ParsedName(base=match.group("base"), tags=tags)

    def format(self, base: str, tags: Optional[Dict[str, str]] = None) -> str:
        """Build a composite name that parse() maps back to ``base`` and ``tags``

        Without tags ``base`` is returned as is. Otherwise raises ValueError when
        the base, a key or a value contains a character reserved by the grammar,
        or a key is blank.
        """
        if not tags:
            return base

        _check_reserved("base name", base, _RESERVED_IN_BASE)

        for key, value in tags.items():
            key, value = str(key), str(value)
            if not key.strip():
                raise ValueError(f"Blank tag key in metric {base!r}")
            _check_reserved("tag key", key, _RESERVED_IN_KEY)
            _check_reserved("tag value", value, _RESERVED_IN_VALUE)

        pairs = ",".join(f"{key}={tags[key]}" for key in sorted(tags))
        return f"{base}{{{pairs}}}"

    @staticmethod
    def _parse_tags(section: str) -> Optional[Dict[str, str]]:
        """Parse the inside of the brace block, None if any pair is malformed"""
        tags = {}
        if not section.strip():
            return tags

        for pair in section.split(","):
            if "=" not in pair:
                return None
            key, value = pair.split("=", 1)
            key = key.strip()
            if not key:
                return None
            tags[key] = value.strip()

        return tags


def _check_reserved(what: str, text: str, reserved: str) -> None:
    found = sorted(set(text) & set(reserved))
    if found:
        raise ValueError(f"{what.capitalize()} {text!r} contains reserved characters: {''.join(found)}")


name_parser = NameTagParser()
