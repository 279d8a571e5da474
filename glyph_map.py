"""Private-use code point assignment and the icon-mapping.json glyph map."""

import json
from dataclasses import dataclass
from pathlib import Path

# First code point handed out; U+E000 is left free.
BASE_CODE_POINT = 0xE001


@dataclass(frozen=True)
class GlyphRecord:
    icon_name: str
    code_point: int

    @property
    def hex_code(self) -> str:
        """CSS escape form, e.g. ``\\E001``."""
        return f"\\{self.code_point:X}"

    @property
    def display_code_point(self) -> str:
        return f"U+{self.code_point:04X}"

    def to_json(self) -> dict:
        return {
            "unicode": self.code_point,
            "hex": self.hex_code,
            "codePoint": self.display_code_point,
        }


def assign_code_points(icon_names: list[str], base: int = BASE_CODE_POINT) -> list[GlyphRecord]:
    """
    Give each icon ``base + index`` in the order the names are given.

    The order is whatever the font synthesis reported; any numbering it
    proposed itself is ignored here.
    """
    seen = set()
    records = []
    for index, name in enumerate(icon_names):
        if name in seen:
            raise ValueError(f"duplicate icon name: {name}")
        seen.add(name)
        records.append(GlyphRecord(icon_name=name, code_point=base + index))
    return records


def build_mapping(records: list[GlyphRecord]) -> dict[str, dict]:
    return {record.icon_name: record.to_json() for record in records}


def css_rule(record: GlyphRecord) -> str:
    return f'.icon-{record.icon_name}:before {{\n  content: "{record.hex_code}";\n}}'


def build_css_rules(records: list[GlyphRecord]) -> list[str]:
    return [css_rule(record) for record in records]


def write_mapping(mapping: dict[str, dict], path: Path) -> Path:
    """Replace ``path`` with the mapping as indented UTF-8 JSON."""
    path = Path(path)
    path.write_text(json.dumps(mapping, indent=2, ensure_ascii=False), encoding="utf-8")
    return path


def load_mapping(path: Path) -> dict[str, dict]:
    with open(path, encoding="utf-8") as f:
        return json.load(f)
