"""
models/megabase.py – Immutable data model for megabase index entries.

FactorioVersion is serialised only in its canonical "major.minor.patch" text
form; MegabaseMetadata maps one-to-one onto an entry of the "saves" array in
megabases.json.
"""

import re
from dataclasses import dataclass
from functools import total_ordering
from typing import Any, Dict, Optional, Tuple

from services.exceptions import MalformedVersionError, RegistryDecodeError

# Each component is an unsigned 16-bit integer.
VERSION_COMPONENT_MAX: int = 0xFFFF

SHA256_PATTERN: re.Pattern = re.compile(r"[0-9a-f]{64}")

_DIGITS: re.Pattern = re.compile(r"[0-9]+")


@dataclass(frozen=True, order=True)
class FactorioVersion:
    """
    The version of Factorio a savefile was written with.

    Attributes
    ----------
    major : First component.
    minor : Second component.
    patch : Third component.

    Ordering is lexicographic on (major, minor, patch).
    """

    major: int
    minor: int
    patch: int

    def __post_init__(self) -> None:
        for label in ("major", "minor", "patch"):
            value = getattr(self, label)
            if isinstance(value, bool) or not isinstance(value, int):
                raise MalformedVersionError(
                    f"Version {label} must be an integer, got {value!r}."
                )
            if not 0 <= value <= VERSION_COMPONENT_MAX:
                raise MalformedVersionError(
                    f"Version {label} {value} is outside 0..{VERSION_COMPONENT_MAX}."
                )

    @classmethod
    def parse(cls, text: str) -> "FactorioVersion":
        """
        Decode the canonical "major.minor.patch" form.

        Raises
        ------
        MalformedVersionError unless *text* has exactly three dot-separated
        unsigned integers that each fit in 16 bits.
        """
        if not isinstance(text, str):
            raise MalformedVersionError(f"Version must be a string, got {text!r}.")

        pieces = text.split(".")
        if len(pieces) != 3:
            raise MalformedVersionError(
                f"Incorrect number of periods present in version string {text!r}."
            )
        if not all(_DIGITS.fullmatch(piece) for piece in pieces):
            raise MalformedVersionError(
                f"Unparseable/non-numeric data found within version {text!r}."
            )

        major, minor, patch = (int(piece) for piece in pieces)
        return cls(major, minor, patch)

    def __str__(self) -> str:
        return f"{self.major}.{self.minor}.{self.patch}"


def _optional_key(value: Optional[str]) -> Tuple[bool, str]:
    # None sorts before any present value.
    return (value is not None, value or "")


@total_ordering
@dataclass(frozen=True)
class MegabaseMetadata:
    """
    Represents one megabase savefile in the index.

    Attributes
    ----------
    name                 : Filename of the savefile, e.g. "base.zip".
    author               : Who built the base; absent until resolved.
    source_link          : The post/video showcasing the megabase.
    factorio_version     : Version of Factorio the save was written with.
    sha256               : Lowercase hex SHA-256 of the savefile; the identity
                           key of the entry.
    download_link_mirror : Optional mirror of the save, if the author permits.
    """

    name: str
    author: Optional[str]
    source_link: str
    factorio_version: FactorioVersion
    sha256: str
    download_link_mirror: Optional[str] = None

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("Megabase name must not be empty.")
        if not isinstance(self.factorio_version, FactorioVersion):
            raise TypeError(
                f"factorio_version must be a FactorioVersion, "
                f"got {type(self.factorio_version).__name__}."
            )
        if not SHA256_PATTERN.fullmatch(self.sha256):
            raise ValueError(
                f"sha256 must be 64 lowercase hex characters, got {self.sha256!r}."
            )

    def sort_key(self) -> tuple:
        """Field-by-field key matching declaration order."""
        return (
            self.name,
            _optional_key(self.author),
            self.source_link,
            self.factorio_version,
            self.sha256,
            _optional_key(self.download_link_mirror),
        )

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, MegabaseMetadata):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def __str__(self) -> str:
        author = self.author or "unknown author"
        return f"{self.name}  ({author}, Factorio {self.factorio_version})"

    # ── Serialisation ─────────────────────────────────────────────────────────

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the on-disk mapping; absent optionals are omitted."""
        data: Dict[str, Any] = {"name": self.name}
        if self.author is not None:
            data["author"] = self.author
        data["source_link"] = self.source_link
        data["factorio_version"] = str(self.factorio_version)
        data["sha256"] = self.sha256
        if self.download_link_mirror is not None:
            data["download_link_mirror"] = self.download_link_mirror
        return data

    @classmethod
    def from_dict(cls, data: Any) -> "MegabaseMetadata":
        """
        Build an entry from its on-disk mapping.

        Raises
        ------
        RegistryDecodeError when a field is missing, mistyped or invalid,
        including an empty source_link or text that is not valid UTF-8.
        """
        if not isinstance(data, dict):
            raise RegistryDecodeError(
                f"Expected a JSON object for a save entry, got {type(data).__name__}."
            )

        def required(key: str) -> str:
            value = data.get(key)
            if not isinstance(value, str):
                raise RegistryDecodeError(f"Save entry field {key!r} is missing or not a string.")
            value.encode("utf-8")
            return value

        def optional(key: str) -> Optional[str]:
            value = data.get(key)
            if value is not None and not isinstance(value, str):
                raise RegistryDecodeError(f"Save entry field {key!r} is not a string.")
            if value is not None:
                value.encode("utf-8")
            return value

        if not data.get("source_link"):
            raise RegistryDecodeError(f"Save entry {data.get('name')!r} has no source_link.")

        try:
            return cls(
                name=required("name"),
                author=optional("author"),
                source_link=required("source_link"),
                factorio_version=FactorioVersion.parse(required("factorio_version")),
                sha256=required("sha256"),
                download_link_mirror=optional("download_link_mirror"),
            )
        except (ValueError, TypeError) as exc:
            raise RegistryDecodeError(f"Invalid save entry {data.get('name')!r}: {exc}") from exc
