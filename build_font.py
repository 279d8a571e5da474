#!/usr/bin/env python3
"""
Build an icon font and its glyph map from a directory of SVG icons.

Usage:
    python build_font.py            # clean icons, build font + icon-mapping.json
    python build_font.py --clean    # delete files from a previous build

    Input directory, output directory and font name come from iconfont.yaml
    and ICONFONTIFY_* environment variables (see iconfont_config.py).

Outputs:
    output_dir/<fontName>.ttf      - Icon font, one glyph per icon
    output_dir/icon-mapping.json   - icon name -> {unicode, hex, codePoint}
"""

import glob
import sys
import tempfile
from dataclasses import dataclass, replace
from pathlib import Path

from clean_icons import CleanReport, clean_icons, find_icons
from glyph_map import (
    GlyphRecord,
    assign_code_points,
    build_css_rules,
    build_mapping,
    load_mapping,
    write_mapping,
)
from iconfont_config import BuildConfig, load_config
from iconfont_errors import IconfontError, InputError, SynthesisError
from iconfont_log import configure_from_env, log
from svg_font import DEFAULT_OPTIONS, synthesize_font

MAPPING_FILE = "icon-mapping.json"


@dataclass
class BuildResult:
    font_paths: list[Path]
    mapping_path: Path
    records: list[GlyphRecord]
    css_rules: list[str]
    clean_report: CleanReport | None = None


def collect_inputs(pattern: str) -> list[Path]:
    """Files matching ``pattern``, in the order they are handed to the synthesis."""
    return [Path(p) for p in sorted(glob.glob(pattern))]


def check_input_dir(input_dir: Path) -> list[Path]:
    """Return the icons in ``input_dir``; raise InputError if there are none."""
    if not input_dir.is_dir():
        raise InputError(
            f"input directory '{input_dir}' does not exist",
            "create it and add .svg icons, or set inputDir / ICONFONTIFY_INPUT_DIR",
        )
    icons = find_icons(input_dir)
    if not icons:
        raise InputError(
            f"no SVG files found in input directory '{input_dir}'",
            "add .svg icons to the directory, or set inputDir / ICONFONTIFY_INPUT_DIR",
        )
    return icons


def generate_font(config: BuildConfig, input_pattern: str | None = None) -> BuildResult:
    """
    Synthesize the font from the icons matching ``input_pattern`` (defaults
    to the configured input directory) and write the font and glyph map.

    Code points are recomputed from the order the synthesis reports its
    glyphs; the font's own cmap must agree with them or the build fails.
    """
    pattern = input_pattern or config.input_pattern
    files = collect_inputs(pattern)
    if not files:
        raise InputError(f"no SVG icons match {pattern}", "add .svg icons to the input directory")

    options = replace(DEFAULT_OPTIONS, font_name=config.font_name, formats=tuple(config.formats))
    synthesized = synthesize_font(files, options)

    records = assign_code_points([glyph.name for glyph in synthesized.glyphs], base=options.start_unicode)
    for glyph, record in zip(synthesized.glyphs, records):
        if glyph.unicode != record.code_point:
            raise SynthesisError(
                f"font maps {glyph.name} to U+{glyph.unicode:04X}, "
                f"glyph map expects {record.display_code_point}",
            )
        log.debug("%s -> %s", record.icon_name, record.display_code_point)

    output_dir = config.output_path
    output_dir.mkdir(parents=True, exist_ok=True)

    font_paths = []
    for fmt in options.formats:
        font_path = output_dir / f"{config.font_name}.{fmt}"
        font_path.write_bytes(synthesized.fonts[fmt])
        log.info("font saved to %s", font_path)
        font_paths.append(font_path)

    mapping_path = write_mapping(build_mapping(records), output_dir / MAPPING_FILE)
    log.info("glyph map saved to %s (%d icons)", mapping_path, len(records))

    return BuildResult(
        font_paths=font_paths,
        mapping_path=mapping_path,
        records=records,
        css_rules=build_css_rules(records),
    )


def clean_build(output_dir: Path) -> list[Path]:
    """Delete the files left in ``output_dir`` by earlier builds."""
    output_dir = Path(output_dir)
    removed = []
    if not output_dir.is_dir():
        return removed
    for path in sorted(output_dir.iterdir()):
        if path.is_file():
            path.unlink()
            removed.append(path)
    log.info("removed %d file(s) from %s", len(removed), output_dir)
    return removed


def run_pipeline(config: BuildConfig) -> BuildResult:
    """
    Normalize the icons, then build the font from the normalized copies.

    Icons are normalized into a temporary working directory unless
    ``config.in_place`` is set, in which case the input files are rewritten.
    """
    icons = check_input_dir(config.input_path)
    log.info("found %d SVG icon(s) in %s", len(icons), config.input_path)

    if config.in_place:
        report = clean_icons(config.input_path, in_place=True)
        result = generate_font(config)
    else:
        with tempfile.TemporaryDirectory(prefix="iconfontify-") as work_dir:
            report = clean_icons(config.input_path, dest_dir=Path(work_dir))
            if not report.cleaned:
                raise InputError(
                    "none of the icons could be normalized",
                    "check the errors above and fix the SVG markup",
                )
            result = generate_font(config, input_pattern=(Path(work_dir) / "*.svg").as_posix())

    result.clean_report = report
    print_summary(config, result)
    return result


def print_summary(config: BuildConfig, result: BuildResult):
    output_dir = config.output_path
    print(f"Output directory: {output_dir}/")
    for path in sorted(output_dir.iterdir()):
        if path.is_file():
            print(f"  {path.name} ({path.stat().st_size / 1024:.1f}K)")
    mapping = load_mapping(result.mapping_path)
    print(f"Unicode mapping: {len(mapping)} icons")
    if result.clean_report and result.clean_report.failed:
        print(f"  Skipped {len(result.clean_report.failed)} icon(s) that failed to clean")


def main():
    configure_from_env(default="INFO")
    args = sys.argv[1:]
    if args not in ([], ["--clean"]):
        print("Usage: python build_font.py [--clean]")
        print("\nOutputs:")
        print("  output_dir/<fontName>.ttf")
        print("  output_dir/icon-mapping.json")
        print("\nConfiguration: iconfont.yaml or ICONFONTIFY_INPUT_DIR,")
        print("  ICONFONTIFY_OUTPUT_DIR, ICONFONTIFY_FONT_NAME")
        sys.exit(1)

    try:
        config = load_config()
        if args == ["--clean"]:
            clean_build(config.output_path)
            return
        run_pipeline(config)
    except IconfontError as exc:
        print(f"Error: {exc}")
        if exc.remediation:
            print(f"  {exc.remediation}")
        sys.exit(1)


if __name__ == "__main__":
    main()
