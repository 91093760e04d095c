"""Line-preserving model of the AWS CLI config file."""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from ssoctl.core.exceptions import ValidationError

_COMMENT_PREFIXES = ("#", ";")

# Same header rule as configparser, which the aws CLI reads the file with:
# anything after the closing bracket is ignored.
_HEADER_RE = re.compile(r"\[(?P<name>.+)\]")


def _section_name(line: str) -> str | None:
    """Return the section name if the line is a [header], else None."""
    match = _HEADER_RE.match(line.strip())
    if match is None:
        return None
    return " ".join(match.group("name").split())


def _check_token(kind: str, value: str) -> None:
    if "\n" in value or "\r" in value:
        raise ValidationError(f"config {kind} must be a single line: {value!r}")


@dataclass
class Section:
    """A [header] and the raw lines that follow it up to the next header."""

    name: str
    header: str
    lines: list[str] = field(default_factory=list)

    def values(self) -> dict[str, str]:
        """Top-level key/value pairs; indented sub-keys and comments are skipped."""
        result: dict[str, str] = {}
        for line in self.lines:
            if not line.strip() or line[:1].isspace():
                continue
            if line.lstrip().startswith(_COMMENT_PREFIXES) or "=" not in line:
                continue
            key, _, value = line.partition("=")
            result[key.strip()] = value.strip()
        return result

    def trailing_blank_lines(self) -> int:
        count = 0
        for line in reversed(self.lines):
            if line.strip():
                break
            count += 1
        return count


class ConfigDocument:
    """
    Structured view over an INI-style config file.

    Unrelated sections, comments and blank lines are kept verbatim and in
    their original order; only sections that are explicitly set or removed
    change. Sections are built from key/value pairs, so the writer cannot
    produce a malformed block.
    """

    def __init__(self, preamble: list[str] | None = None, sections: list[Section] | None = None):
        self.preamble: list[str] = preamble or []
        self.sections: list[Section] = sections or []

    @classmethod
    def parse(cls, text: str) -> "ConfigDocument":
        """Parse file content."""
        preamble: list[str] = []
        sections: list[Section] = []
        current: Section | None = None

        for line in text.splitlines():
            name = _section_name(line)
            if name is not None:
                current = Section(name=name, header=line)
                sections.append(current)
            elif current is None:
                preamble.append(line)
            else:
                current.lines.append(line)

        return cls(preamble, sections)

    def render(self) -> str:
        """Render back to file content."""
        out = list(self.preamble)
        for section in self.sections:
            out.append(section.header)
            out.extend(section.lines)
        if not out:
            return ""
        return "\n".join(out) + "\n"

    def _find(self, name: str) -> list[int]:
        return [i for i, s in enumerate(self.sections) if s.name == name]

    def has_section(self, name: str) -> bool:
        """Check if a section header is present."""
        return bool(self._find(name))

    def get(self, name: str) -> dict[str, str] | None:
        """Key/value pairs of a section, or None if absent."""
        indexes = self._find(name)
        if not indexes:
            return None
        merged: dict[str, str] = {}
        for i in indexes:
            merged.update(self.sections[i].values())
        return merged

    def section_names(self) -> list[str]:
        """All section names in file order."""
        return [s.name for s in self.sections]

    @staticmethod
    def _build_lines(values: dict[str, str]) -> list[str]:
        lines = []
        for key, value in values.items():
            key = str(key).strip()
            value = str(value).strip()
            _check_token("key", key)
            _check_token("value", value)
            if not key or "=" in key or key.startswith("["):
                raise ValidationError(f"invalid config key: {key!r}")
            lines.append(f"{key} = {value}")
        return lines

    def _separate_last(self) -> None:
        """Make sure a blank line precedes a section appended at the end."""
        if self.sections:
            last = self.sections[-1]
            if last.trailing_blank_lines() == 0:
                last.lines.append("")
        elif self.preamble and self.preamble[-1].strip():
            self.preamble.append("")

    def set_section(self, name: str, values: dict[str, str]) -> None:
        """
        Replace a section in place, or append it when absent.

        Only the lines of that section (header to next header) are replaced;
        duplicate headers of the same name are dropped.
        """
        _check_token("section name", name)
        body = self._build_lines(values)
        indexes = self._find(name)

        if not indexes:
            self.append_section(name, values)
            return

        first = self.sections[indexes[0]]
        is_last = indexes[0] == len(self.sections) - 1
        keep_blank = first.trailing_blank_lines() or (0 if is_last else 1)
        first.lines = body + [""] * keep_blank
        for i in reversed(indexes[1:]):
            del self.sections[i]

    def append_section(self, name: str, values: dict[str, str]) -> None:
        """Append a new section at the end of the document."""
        _check_token("section name", name)
        body = self._build_lines(values)
        self._separate_last()
        self.sections.append(Section(name=name, header=f"[{name}]", lines=body))

    def remove_section(self, name: str) -> bool:
        """Remove every section with this name. Returns True if any was removed."""
        indexes = self._find(name)
        for i in reversed(indexes):
            del self.sections[i]
        return bool(indexes)

    def replace_section(self, name: str, values: dict[str, str]) -> None:
        """Drop any existing section wholesale and append a fresh one."""
        self.remove_section(name)
        self.append_section(name, values)
