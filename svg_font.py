"""
Synthesize a TrueType icon font from SVG files.
Uses fonttools FontBuilder to create the font binary.

One glyph per SVG file. The viewBox is mapped onto the em: its top edge sits
at ``font_height - descent`` and its bottom edge at ``-descent``. Cubic
curves are converted to quadratics for the glyf table.
"""

import math
import re
import xml.etree.ElementTree as ET
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path

from fontTools.fontBuilder import FontBuilder
from fontTools.misc.transform import Identity, Transform
from fontTools.pens.boundsPen import BoundsPen
from fontTools.pens.cu2quPen import Cu2QuPen
from fontTools.pens.recordingPen import RecordingPen
from fontTools.pens.transformPen import TransformPen
from fontTools.pens.ttGlyphPen import TTGlyphPen
from fontTools.svgLib.path import parse_path
from fontTools.svgLib.path.shapes import PathBuilder

from glyph_map import BASE_CODE_POINT
from iconfont_errors import ServiceUnavailableError, SynthesisError
from iconfont_log import log

FLAVORS = {"ttf": None, "woff": "woff", "woff2": "woff2"}

SHAPE_TAGS = {"path", "rect", "circle", "ellipse", "line", "polyline", "polygon"}
SKIPPED_TAGS = {"defs", "clipPath", "mask", "symbol", "marker", "pattern", "style",
                "metadata", "title", "desc", "linearGradient", "radialGradient"}

_TRANSFORM_RE = re.compile(r"(matrix|translate|scale|rotate|skewX|skewY)\s*\(([^)]*)\)")
_NUMBER_RE = re.compile(r"[-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?")
_LENGTH_RE = re.compile(r"([-+]?(?:\d+\.?\d*|\.\d+)(?:[eE][-+]?\d+)?)(px)?")


@dataclass(frozen=True)
class SynthesisOptions:
    font_name: str = "iconfont"
    formats: tuple[str, ...] = ("ttf",)
    font_height: int = 1024          # units per em
    descent: int = 200               # raised from the usual 0 for better baseline alignment
    normalize: bool = True           # scale every icon to the full font height
    center_horizontally: bool = True
    fixed_width: bool = False        # keep each icon's own aspect ratio
    font_weight: int = 400
    font_style: str = "normal"
    metadata: str = "Generated icon font"
    start_unicode: int = BASE_CODE_POINT


DEFAULT_OPTIONS = SynthesisOptions()


@dataclass(frozen=True)
class GlyphData:
    """Metadata the service reports for one glyph that made it into the font."""
    name: str
    path: Path
    glyph_name: str
    unicode: int


@dataclass
class SynthesisResult:
    fonts: dict[str, bytes] = field(default_factory=dict)
    glyphs: list[GlyphData] = field(default_factory=list)


@dataclass
class _Icon:
    name: str
    path: Path
    view_box: tuple[float, float, float, float] | None
    outline: RecordingPen


# ---------------------------------------------------------------------------
# SVG reading
# ---------------------------------------------------------------------------

def _local(tag: str) -> str:
    return tag.split("}", 1)[1] if tag.startswith("{") else tag


def _style_value(el: ET.Element, name: str) -> str | None:
    style = el.get("style")
    if style:
        for part in style.split(";"):
            if ":" in part:
                key, value = part.split(":", 1)
                if key.strip() == name:
                    return value.strip()
    return el.get(name)


def parse_transform(value: str) -> Transform:
    """Parse an SVG transform attribute into a single fontTools Transform."""
    result = Identity
    for func, args in _TRANSFORM_RE.findall(value):
        nums = [float(n) for n in _NUMBER_RE.findall(args)]
        if func == "matrix":
            if len(nums) != 6:
                raise ValueError(f"matrix() needs 6 numbers: {value!r}")
            result = result.transform(nums)
        elif func == "translate":
            result = result.translate(nums[0], nums[1] if len(nums) > 1 else 0)
        elif func == "scale":
            result = result.scale(nums[0], nums[1] if len(nums) > 1 else nums[0])
        elif func == "rotate":
            angle = math.radians(nums[0])
            if len(nums) >= 3:
                cx, cy = nums[1], nums[2]
                result = result.translate(cx, cy).rotate(angle).translate(-cx, -cy)
            else:
                result = result.rotate(angle)
        elif func == "skewX":
            result = result.skew(math.radians(nums[0]), 0)
        elif func == "skewY":
            result = result.skew(0, math.radians(nums[0]))
    return result


def _view_box(root: ET.Element, path: Path) -> tuple[float, float, float, float] | None:
    """The icon canvas, or None when the root gives no size at all."""
    view_box = root.get("viewBox")
    if view_box:
        values = [float(v) for v in _NUMBER_RE.findall(view_box)]
        if len(values) == 4 and values[2] > 0 and values[3] > 0:
            return tuple(values)
        raise SynthesisError(f"{path.name}: invalid viewBox {view_box!r}")

    width = _LENGTH_RE.fullmatch(root.get("width", "").strip())
    height = _LENGTH_RE.fullmatch(root.get("height", "").strip())
    if width and height and float(width.group(1)) > 0 and float(height.group(1)) > 0:
        return 0.0, 0.0, float(width.group(1)), float(height.group(1))
    return None


def _draw_element(el: ET.Element, pen, ctm: Transform, fill: str | None):
    tag = _local(el.tag)
    if tag in SKIPPED_TAGS or _style_value(el, "display") == "none":
        return

    if "transform" in el.attrib:
        ctm = ctm.transform(parse_transform(el.attrib["transform"]))
    fill = _style_value(el, "fill") or fill

    if tag in SHAPE_TAGS and fill != "none":
        if tag == "path" and not el.get("d"):
            return
        builder = PathBuilder()
        if builder.add_path_from_element(el):
            for d in builder.paths:
                parse_path(d, TransformPen(pen, ctm))
    elif tag == "use":
        log.warning("<use> elements are not expanded; referenced shapes are skipped")

    for child in el:
        _draw_element(child, pen, ctm, fill)


def read_icon(path: Path) -> _Icon:
    """Parse one SVG file and record its outline in SVG user space."""
    path = Path(path)
    try:
        root = ET.parse(path).getroot()
    except ET.ParseError as exc:
        raise SynthesisError(f"{path.name}: {exc}", "fix or remove the malformed icon") from exc

    outline = RecordingPen()
    try:
        _draw_element(root, outline, Identity, None)
    except (ValueError, IndexError) as exc:
        raise SynthesisError(f"{path.name}: cannot read outline: {exc}") from exc
    return _Icon(name=path.stem, path=path, view_box=_view_box(root, path), outline=outline)


# ---------------------------------------------------------------------------
# Glyph building
# ---------------------------------------------------------------------------

def _glyph_name(icon_name: str, used: set[str]) -> str:
    name = re.sub(r"[^A-Za-z0-9._-]", "_", icon_name)[:63].lstrip(".") or "icon"
    candidate = name
    suffix = 1
    while candidate in used or candidate == ".notdef":
        candidate = f"{name}.{suffix}"
        suffix += 1
    used.add(candidate)
    return candidate


def _notdef_glyph(font_height: int, descent: int):
    pen = TTGlyphPen(None)
    width = font_height // 2
    top = font_height - descent - 100
    pen.moveTo((50, 0))
    pen.lineTo((50, top))
    pen.lineTo((width - 50, top))
    pen.lineTo((width - 50, 0))
    pen.closePath()
    return pen.glyph(), width


def _font_outline(icon: _Icon, scale: float, options: SynthesisOptions) -> RecordingPen:
    vb_x, vb_y, _, _ = icon.view_box
    to_font = (
        Identity
        .translate(0, options.font_height - options.descent)
        .scale(scale, -scale)
        .translate(-vb_x, -vb_y)
    )
    outline = RecordingPen()
    icon.outline.replay(TransformPen(outline, to_font))
    return outline


def _build_glyph(outline: RecordingPen, advance: int, options: SynthesisOptions):
    """Return (glyph, lsb), or None when the outline is empty."""
    bounds_pen = BoundsPen(None)
    outline.replay(bounds_pen)
    if bounds_pen.bounds is None:
        return None
    x_min, _, x_max, _ = bounds_pen.bounds

    dx = 0.0
    if options.center_horizontally:
        dx = (advance - (x_max - x_min)) / 2 - x_min

    tt_pen = TTGlyphPen(None)
    cu2qu_pen = Cu2QuPen(tt_pen, max_err=1.0, reverse_direction=True)
    outline.replay(TransformPen(cu2qu_pen, (1, 0, 0, 1, dx, 0)))
    return tt_pen.glyph(), round(x_min + dx)


def _serialize(fb: FontBuilder, fmt: str) -> bytes:
    if fmt not in FLAVORS:
        raise SynthesisError(f"unsupported font format: {fmt}", f"choose from {', '.join(FLAVORS)}")
    fb.font.flavor = FLAVORS[fmt]
    buf = BytesIO()
    try:
        fb.font.save(buf)
    except ImportError as exc:
        raise ServiceUnavailableError(
            f"{fmt} output is unavailable: {exc}",
            "pip install brotli (or install iconfontify[woff2])",
        ) from exc
    finally:
        fb.font.flavor = None
    return buf.getvalue()


def synthesize_font(files: list[Path], options: SynthesisOptions = DEFAULT_OPTIONS) -> SynthesisResult:
    """
    Build one font from ``files`` and return its binaries plus per-glyph data.

    Glyphs are reported in file order. Files whose outline comes out empty are
    dropped, so the reported list can be shorter than ``files``.
    """
    if not files:
        raise SynthesisError("no input files were given to the font synthesis")

    icons = []
    for path in files:
        icon = read_icon(path)
        if icon.view_box is None:
            log.warning("%s has no viewBox and no width/height, dropped from the font", icon.path.name)
            continue
        icons.append(icon)
    if not icons:
        raise SynthesisError(
            "none of the icons has a usable size",
            "give the icons a viewBox attribute",
        )
    max_height = max(icon.view_box[3] for icon in icons)

    prepared = []
    for icon in icons:
        scale = options.font_height / (icon.view_box[3] if options.normalize else max_height)
        prepared.append((icon, scale, _font_outline(icon, scale, options)))

    if options.fixed_width:
        fixed_advance = max(round(icon.view_box[2] * scale) for icon, scale, _ in prepared)

    notdef, notdef_width = _notdef_glyph(options.font_height, options.descent)
    glyph_order = [".notdef"]
    glyphs = {".notdef": notdef}
    metrics = {".notdef": (notdef_width, 50)}
    cmap = {}
    result = SynthesisResult()
    used_names = set()

    for icon, scale, outline in prepared:
        advance = fixed_advance if options.fixed_width else round(icon.view_box[2] * scale)
        built = _build_glyph(outline, advance, options)
        if built is None:
            log.warning("%s has no visible outline, dropped from the font", icon.path.name)
            continue
        glyph, lsb = built

        glyph_name = _glyph_name(icon.name, used_names)
        unicode = options.start_unicode + len(result.glyphs)
        glyph_order.append(glyph_name)
        glyphs[glyph_name] = glyph
        metrics[glyph_name] = (advance, lsb)
        cmap[unicode] = glyph_name
        result.glyphs.append(GlyphData(name=icon.name, path=icon.path, glyph_name=glyph_name, unicode=unicode))

    if not result.glyphs:
        raise SynthesisError(
            "font synthesis produced no glyphs",
            "check that the icons contain filled shapes",
        )

    ascent = options.font_height - options.descent
    italic = options.font_style == "italic"
    style_name = "Italic" if italic else "Regular"
    ps_family = re.sub(r"[^A-Za-z0-9-]", "", options.font_name) or "iconfont"

    fb = FontBuilder(options.font_height, isTTF=True)
    fb.setupGlyphOrder(glyph_order)
    fb.setupCharacterMap(cmap)
    fb.setupGlyf(glyphs)
    fb.setupHorizontalMetrics(metrics)
    fb.setupHorizontalHeader(ascent=ascent, descent=-options.descent)
    fb.setupNameTable({
        "familyName": options.font_name,
        "styleName": style_name,
        "uniqueFontIdentifier": f"iconfontify:{options.font_name}.{style_name}",
        "fullName": f"{options.font_name} {style_name}",
        "psName": f"{ps_family}-{style_name}",
        "version": "Version 1.0",
        "description": options.metadata,
    })
    fb.setupOS2(
        sTypoAscender=ascent,
        sTypoDescender=-options.descent,
        sTypoLineGap=0,
        usWinAscent=ascent,
        usWinDescent=options.descent,
        usWeightClass=options.font_weight,
        fsSelection=0x01 if italic else 0x40,
        fsType=0,  # Installable embedding - no restrictions
    )
    fb.setupPost(isFixedPitch=int(options.fixed_width))
    fb.setupHead(unitsPerEm=options.font_height, macStyle=0x02 if italic else 0)

    for fmt in options.formats:
        result.fonts[fmt] = _serialize(fb, fmt)

    log.info("synthesized %d glyph(s) into %s", len(result.glyphs), ", ".join(options.formats))
    return result
