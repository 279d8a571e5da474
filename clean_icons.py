#!/usr/bin/env python3
"""
Normalize SVG icons into single-color, outline-only documents.

Every icon runs through the ordered rule list RULES. Each rule mutates a
parsed ElementTree in place; later rules rely on earlier ones having run
(paint is stripped only after background shapes are gone, otherwise the
background would come back as a filled outline).

Usage:
    python clean_icons.py <dest_dir>      # write normalized copies
    python clean_icons.py --in-place      # overwrite the input icons

The input directory comes from the build configuration (see iconfont_config).
"""

import re
import sys
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from pathlib import Path

from iconfont_config import load_config
from iconfont_errors import IconfontError, InputError, NormalizationError
from iconfont_log import configure_from_env, log

SVG_NS = "http://www.w3.org/2000/svg"
XLINK_NS = "http://www.w3.org/1999/xlink"
XML_NS = "http://www.w3.org/XML/1998/namespace"

ET.register_namespace("", SVG_NS)
ET.register_namespace("xlink", XLINK_NS)

ICON_SUFFIX = ".svg"

# Digits kept by numeric cleanup. Fewer warps small icon grids at font sizes.
PRECISION = 3

SHAPE_TAGS = {"path", "rect", "circle", "ellipse", "line", "polyline", "polygon"}
NON_RENDERING_TAGS = {"metadata", "title", "desc"}
BACKGROUND_TAGS = {"defs", "mask", "clipPath"}
PAINT_PROPERTIES = ("fill", "fill-opacity", "clip-path")

NUMERIC_ATTRS = {
    "x", "y", "width", "height", "cx", "cy", "r", "rx", "ry",
    "x1", "y1", "x2", "y2", "stroke-width", "opacity", "fill-opacity",
    "stroke-opacity",
}

_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_NUMERIC_VALUE_RE = re.compile(r"([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)(px)?")
_COMMAND_RE = re.compile(r"[MmZzLlHhVvCcSsQqTtAa]")
_SEPARATOR_RE = re.compile(r"[\s,]*")
_LIST_SPLIT_RE = re.compile(r"[\s,]+")
_CSS_COMMENT_RE = re.compile(r"/\*.*?\*/", re.DOTALL)
_CSS_RULE_RE = re.compile(r"([^{}@]+)\{([^{}]*)\}")
# type selector, class selectors, or both: "path", ".bg", "path.bg.st0"
_SIMPLE_SELECTOR_RE = re.compile(r"([A-Za-z][\w-]*)?((?:\.[\w-]+)*)")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def local_name(tag: str) -> str:
    """Strip the ``{namespace}`` prefix ElementTree puts on qualified names."""
    return tag.split("}", 1)[1] if tag.startswith("{") else tag


def _namespace(name: str) -> str | None:
    return name[1:].split("}", 1)[0] if name.startswith("{") else None


def format_number(value: float, precision: int = PRECISION) -> str:
    """Shortest decimal form of ``value`` rounded to ``precision`` digits."""
    value = round(value, precision)
    if value == 0:
        return "0"
    if value.is_integer():
        return str(int(value))
    return f"{value:.{precision}f}".rstrip("0").rstrip(".")


def round_path_data(d: str, precision: int = PRECISION) -> str:
    """
    Round every coordinate in SVG path data.

    Arc flags are read as single characters so compact forms like
    ``a1 1 0 011 1`` survive. Raises ValueError on malformed data.
    """
    tokens = []
    pos = 0
    command = None
    index = 0
    while True:
        pos = _SEPARATOR_RE.match(d, pos).end()
        if pos >= len(d):
            break
        m = _COMMAND_RE.match(d, pos)
        if m:
            command = m.group()
            index = 0
            tokens.append(command)
            pos = m.end()
            continue
        if command is None:
            raise ValueError(f"path data must start with a command: {d[:20]!r}")
        if command in "Aa" and index % 7 in (3, 4):
            flag = d[pos]
            if flag not in "01":
                raise ValueError(f"bad arc flag {flag!r} in path data")
            tokens.append(flag)
            pos += 1
        else:
            m = _NUMBER_RE.match(d, pos)
            if m is None:
                raise ValueError(f"unexpected {d[pos]!r} in path data")
            tokens.append(format_number(float(m.group()), precision))
            pos = m.end()
        index += 1

    out = []
    for i, token in enumerate(tokens):
        if i and not _COMMAND_RE.fullmatch(token) and not _COMMAND_RE.fullmatch(tokens[i - 1]):
            out.append(" ")
        out.append(token)
    return "".join(out)


def parse_style(style: str) -> dict[str, str]:
    declarations = {}
    for part in style.split(";"):
        if ":" in part:
            key, value = part.split(":", 1)
            declarations[key.strip()] = value.strip()
    return declarations


def _format_style(declarations: dict[str, str]) -> str:
    return ";".join(f"{k}:{v}" for k, v in declarations.items())


def presentation(el: ET.Element, name: str) -> str | None:
    """Value of a presentation property, inline ``style`` winning over attributes."""
    style = el.get("style")
    if style:
        value = parse_style(style).get(name)
        if value is not None:
            return value
    return el.get(name)


def _is_zero(value: str | None) -> bool:
    if value is None:
        return False
    value = value.strip()
    m = _NUMERIC_VALUE_RE.fullmatch(value.rstrip("%"))
    # non-numeric values such as "inherit" never hide anything
    return m is not None and float(m.group(1)) == 0


def canvas_box(root: ET.Element) -> tuple[float, float, float, float] | None:
    """The icon canvas as (x, y, width, height), from viewBox or width/height."""
    view_box = root.get("viewBox")
    if view_box:
        values = [float(v) for v in _LIST_SPLIT_RE.split(view_box.strip())]
        if len(values) != 4:
            raise ValueError(f"viewBox needs 4 numbers, got {view_box!r}")
        return tuple(values)
    width, height = root.get("width"), root.get("height")
    if width and height:
        w, h = _NUMERIC_VALUE_RE.fullmatch(width.strip()), _NUMERIC_VALUE_RE.fullmatch(height.strip())
        if w and h:
            return 0.0, 0.0, float(w.group(1)), float(h.group(1))
    return None


# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

def _selector_matches(selector: str, el: ET.Element) -> bool:
    m = _SIMPLE_SELECTOR_RE.fullmatch(selector)
    tag, classes = m.group(1), m.group(2)
    if tag and tag != local_name(el.tag):
        return False
    wanted = set(classes.split(".")) - {""}
    return wanted <= set(el.get("class", "").split())


def inline_styles(root: ET.Element):
    """
    Move <style> rules with type and class selectors into each matching
    element's ``style`` attribute, then drop the <style> elements.

    Declarations already in ``style`` win over the stylesheet; among rules,
    class selectors win over bare type selectors. Other selectors are
    ignored.
    """
    sheets = [el for el in root.iter() if local_name(el.tag) == "style"]
    rules = []
    for sheet in sheets:
        css = _CSS_COMMENT_RE.sub("", sheet.text or "")
        for selectors, body in _CSS_RULE_RE.findall(css):
            declarations = parse_style(body.replace("!important", ""))
            for selector in selectors.split(","):
                selector = selector.strip()
                if not selector or not _SIMPLE_SELECTOR_RE.fullmatch(selector):
                    continue
                specificity = (selector.count("."), 1 if selector[0] != "." else 0)
                rules.append((specificity, len(rules), selector, declarations))
    rules.sort()

    for el in root.iter():
        if local_name(el.tag) == "style":
            continue
        merged = {}
        for _, _, selector, declarations in rules:
            if _selector_matches(selector, el):
                merged.update(declarations)
        if merged:
            merged.update(parse_style(el.get("style", "")))
            el.set("style", _format_style(merged))

    for parent in list(root.iter()):
        for child in list(parent):
            if local_name(child.tag) == "style":
                parent.remove(child)


def optimize(root: ET.Element):
    """
    Generic structural cleanup: stylesheets inlined, editor leftovers, empty
    attributes and numeric precision. Shapes, groups, paths and transforms
    are kept as they are.
    """
    inline_styles(root)

    def visit(el):
        for child in list(el):
            ns = _namespace(child.tag)
            if (ns not in (None, SVG_NS)) or local_name(child.tag) in NON_RENDERING_TAGS:
                el.remove(child)
            else:
                visit(child)

        for name in list(el.attrib):
            value = el.attrib[name]
            ns = _namespace(name)
            if ns not in (None, XLINK_NS, XML_NS) or not value.strip():
                del el.attrib[name]
            elif name == "d":
                el.set(name, round_path_data(value))
            elif name == "points":
                el.set(name, " ".join(format_number(float(v)) for v in _LIST_SPLIT_RE.split(value.strip())))
            elif name in NUMERIC_ATTRS:
                m = _NUMERIC_VALUE_RE.fullmatch(value.strip())
                if m:
                    el.set(name, format_number(float(m.group(1))))
            elif name == "viewBox":
                el.set(name, " ".join(format_number(float(v)) for v in _LIST_SPLIT_RE.split(value.strip())))

    visit(root)


def remove_background(root: ET.Element):
    """
    Remove constructs that are not part of the icon silhouette: defs, masks,
    clip paths, canvas-sized background rects and invisible shapes.
    """
    canvas = canvas_box(root)

    def covers_canvas(rect):
        width, height = rect.get("width", ""), rect.get("height", "")
        if width == "100%" and height == "100%":
            return True
        if canvas is None:
            return False
        cx, cy, cw, ch = canvas
        try:
            x, y = float(rect.get("x", 0)), float(rect.get("y", 0))
            w, h = float(width), float(height)
        except ValueError:
            return False
        eps = 10 ** -PRECISION
        return x <= cx + eps and y <= cy + eps and x + w >= cx + cw - eps and y + h >= cy + ch - eps

    def is_hidden(el, fill, stroke, fill_opacity):
        if presentation(el, "display") == "none":
            return True
        if presentation(el, "visibility") in ("hidden", "collapse"):
            return True
        if _is_zero(presentation(el, "opacity")):
            return True
        if local_name(el.tag) not in SHAPE_TAGS:
            return False
        no_fill = fill == "none" or _is_zero(fill_opacity)
        no_stroke = stroke in (None, "none")
        return no_fill and no_stroke

    def visit(el, fill, stroke, fill_opacity):
        for child in list(el):
            tag = local_name(child.tag)
            child_fill = presentation(child, "fill") or fill
            child_stroke = presentation(child, "stroke") or stroke
            # fill-opacity inherits; a group at 0 hides every shape it holds
            child_fill_opacity = presentation(child, "fill-opacity") or fill_opacity
            if tag in BACKGROUND_TAGS:
                el.remove(child)
            elif tag == "rect" and covers_canvas(child):
                el.remove(child)
            elif is_hidden(child, child_fill, child_stroke, child_fill_opacity):
                el.remove(child)
            else:
                child.attrib.pop("mask", None)
                visit(child, child_fill, child_stroke, child_fill_opacity)

    root.attrib.pop("mask", None)
    visit(root, presentation(root, "fill"), presentation(root, "stroke"), presentation(root, "fill-opacity"))


def strip_paint(root: ET.Element):
    """Drop fill, fill-opacity and clip-path so text color drives rendering."""
    for el in root.iter():
        for name in PAINT_PROPERTIES:
            el.attrib.pop(name, None)
        style = el.get("style")
        if style is not None:
            declarations = parse_style(style)
            for name in PAINT_PROPERTIES:
                declarations.pop(name, None)
            if declarations:
                el.set("style", _format_style(declarations))
            else:
                del el.attrib["style"]


def drop_empty_groups(root: ET.Element):
    """Remove childless groups and unwrap groups left without attributes."""
    def visit(el):
        index = 0
        while index < len(el):
            child = el[index]
            if local_name(child.tag) != "g":
                visit(child)
                index += 1
                continue
            visit(child)
            if len(child) == 0:
                el.remove(child)
            elif not child.attrib:
                grandchildren = list(child)
                el.remove(child)
                for offset, grandchild in enumerate(grandchildren):
                    el.insert(index + offset, grandchild)
                index += len(grandchildren)
            else:
                index += 1

    visit(root)


def inject_current_color(root: ET.Element):
    """Mark every path with fill="currentColor" when no fill is left anywhere."""
    if any("fill" in el.attrib for el in root.iter()):
        return
    for el in root.iter():
        if local_name(el.tag) == "path":
            el.set("fill", "currentColor")


def format_viewbox(root: ET.Element):
    """Integers without a decimal point, everything else fixed to 3 decimals."""
    view_box = root.get("viewBox")
    if view_box is None:
        return
    parts = []
    for raw in _LIST_SPLIT_RE.split(view_box.strip()):
        value = float(raw)
        parts.append(str(int(value)) if value.is_integer() else f"{value:.{PRECISION}f}")
    root.set("viewBox", " ".join(parts))


def collapse_whitespace(root: ET.Element):
    for el in root.iter():
        if el.text is not None and not el.text.strip():
            el.text = None
        if el.tail is not None and not el.tail.strip():
            el.tail = None


RULES = (
    optimize,
    remove_background,
    strip_paint,
    drop_empty_groups,
    inject_current_color,
    format_viewbox,
    collapse_whitespace,
)


# ---------------------------------------------------------------------------
# Documents and files
# ---------------------------------------------------------------------------

def parse_svg(markup: str) -> ET.Element:
    """Parse markup into an <svg> root, qualifying un-namespaced documents."""
    root = ET.fromstring(markup)
    if local_name(root.tag) != "svg":
        raise ValueError(f"root element is <{local_name(root.tag)}>, not <svg>")
    if _namespace(root.tag) is None:
        for el in root.iter():
            if _namespace(el.tag) is None:
                el.tag = f"{{{SVG_NS}}}{el.tag}"
    return root


def normalize_svg(markup: str) -> str:
    """Apply RULES to one SVG document and return the serialized result."""
    root = parse_svg(markup)
    for rule in RULES:
        rule(root)
    return ET.tostring(root, encoding="unicode")


def normalize_file(source: Path, target: Path | None = None) -> Path:
    """
    Normalize ``source`` and write it to ``target`` (``source`` itself when
    omitted). Nothing is written when normalization fails.
    """
    source = Path(source)
    target = Path(target) if target is not None else source
    try:
        cleaned = normalize_svg(source.read_text(encoding="utf-8"))
    except (ET.ParseError, ValueError) as exc:
        raise NormalizationError(source, str(exc)) from exc
    target.write_text(cleaned, encoding="utf-8")
    return target


def find_icons(input_dir: Path) -> list[Path]:
    """SVG files directly inside ``input_dir``, in name order."""
    return sorted(p for p in Path(input_dir).iterdir() if p.suffix == ICON_SUFFIX and p.is_file())


@dataclass
class CleanReport:
    cleaned: list[Path] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)


def clean_icons(input_dir: Path, dest_dir: Path | None = None, in_place: bool = False) -> CleanReport:
    """
    Normalize every icon in ``input_dir``.

    Results go to ``dest_dir``; the sources are overwritten only with
    ``in_place=True``. A file that fails is logged and skipped, the rest of
    the batch still runs.
    """
    if dest_dir is None and not in_place:
        raise ValueError("clean_icons needs dest_dir unless in_place=True")

    input_dir = Path(input_dir)
    if not input_dir.is_dir():
        raise InputError(
            f"input directory does not exist: {input_dir}",
            "create it and add .svg icons, or point inputDir at your icon directory",
        )
    if dest_dir is not None:
        dest_dir = Path(dest_dir)
        dest_dir.mkdir(parents=True, exist_ok=True)

    report = CleanReport()
    log.info("cleaning SVG icons in %s", input_dir)
    for path in find_icons(input_dir):
        target = path if in_place else dest_dir / path.name
        try:
            normalize_file(path, target)
        except NormalizationError as exc:
            log.error("failed to clean %s: %s", path.name, exc)
            report.failed.append((path, str(exc)))
            continue
        log.info("cleaned %s", path.name)
        report.cleaned.append(target)

    log.info("cleaned %d icon(s), %d failed", len(report.cleaned), len(report.failed))
    return report


def main():
    configure_from_env(default="INFO")
    args = sys.argv[1:]
    if len(args) != 1:
        print("Usage: python clean_icons.py <dest_dir>")
        print("       python clean_icons.py --in-place")
        sys.exit(1)

    try:
        config = load_config()
        if args[0] == "--in-place":
            clean_icons(config.input_path, in_place=True)
        else:
            clean_icons(config.input_path, dest_dir=Path(args[0]))
    except IconfontError as exc:
        print(f"Error: {exc}")
        if exc.remediation:
            print(f"  {exc.remediation}")
        sys.exit(1)


if __name__ == "__main__":
    main()
