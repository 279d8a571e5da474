"""End-to-end tests for the icon font build."""

import json
from dataclasses import replace

import pytest
from fontTools.ttLib import TTFont

import build_font
from build_font import MAPPING_FILE, clean_build, generate_font, run_pipeline
from conftest import BROKEN_SVG, HOME_SVG
from iconfont_errors import InputError


def _mapping(config):
    return json.loads((config.output_path / MAPPING_FILE).read_text(encoding="utf-8"))


# ---------------------------------------------------------------------------
# Pipeline
# ---------------------------------------------------------------------------

def test_three_icons_round_trip(build_config):
    result = run_pipeline(build_config)

    font_path = build_config.output_path / "iconfont.ttf"
    assert result.font_paths == [font_path]
    assert font_path.stat().st_size > 0

    mapping = _mapping(build_config)
    assert list(mapping) == ["home", "search", "user"]
    assert mapping == {
        "home": {"unicode": 0xE001, "hex": "\\E001", "codePoint": "U+E001"},
        "search": {"unicode": 0xE002, "hex": "\\E002", "codePoint": "U+E002"},
        "user": {"unicode": 0xE003, "hex": "\\E003", "codePoint": "U+E003"},
    }


def test_font_and_map_agree(build_config):
    run_pipeline(build_config)

    cmap = TTFont(build_config.output_path / "iconfont.ttf").getBestCmap()
    for name, entry in _mapping(build_config).items():
        assert cmap[entry["unicode"]] == name


def test_consecutive_builds_give_identical_maps(build_config):
    run_pipeline(build_config)
    first = (build_config.output_path / MAPPING_FILE).read_text(encoding="utf-8")
    run_pipeline(build_config)
    second = (build_config.output_path / MAPPING_FILE).read_text(encoding="utf-8")

    assert first == second


def test_code_points_are_contiguous(tmp_path, make_icons):
    make_icons(tmp_path / "icon", {f"icon{i:02d}": HOME_SVG for i in range(12)})
    config = build_font.BuildConfig(cwd=tmp_path)

    result = run_pipeline(config)

    points = sorted(r.code_point for r in result.records)
    assert points == list(range(0xE001, 0xE001 + 12))


def test_sources_are_not_modified_by_default(build_config, icon_dir):
    before = {p.name: p.read_text(encoding="utf-8") for p in icon_dir.iterdir()}
    run_pipeline(build_config)
    after = {p.name: p.read_text(encoding="utf-8") for p in icon_dir.iterdir()}

    assert before == after


def test_in_place_build_rewrites_sources(build_config, icon_dir):
    run_pipeline(replace(build_config, in_place=True))

    assert 'fill="currentColor"' in (icon_dir / "user.svg").read_text(encoding="utf-8")
    assert len(_mapping(build_config)) == 3


def test_malformed_icon_is_skipped(build_config, icon_dir):
    (icon_dir / "broken.svg").write_text(BROKEN_SVG, encoding="utf-8")

    result = run_pipeline(build_config)

    assert list(_mapping(build_config)) == ["home", "search", "user"]
    assert [p.name for p, _ in result.clean_report.failed] == ["broken.svg"]


def test_map_is_rebuilt_from_scratch(build_config, icon_dir):
    run_pipeline(build_config)
    (icon_dir / "search.svg").unlink()
    run_pipeline(build_config)

    assert _mapping(build_config) == {
        "home": {"unicode": 0xE001, "hex": "\\E001", "codePoint": "U+E001"},
        "user": {"unicode": 0xE002, "hex": "\\E002", "codePoint": "U+E002"},
    }


@pytest.mark.parametrize("markup", [
    ('<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24">'
     '<g fill-opacity="0"><path d="M0 0h24v24H0z" fill="#fff"/></g>'
     '<path d="M10 10h4v4h-4z"/></svg>'),
    ('<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24">'
     '<style>.bg{fill:none}</style>'
     '<path class="bg" d="M0 0h24v24H0z"/><path d="M10 10h4v4h-4z"/></svg>'),
], ids=["group-fill-opacity", "stylesheet"])
def test_hidden_background_does_not_reach_the_glyph(tmp_path, make_icons, markup):
    make_icons(tmp_path / "icon", {"box": markup})
    config = build_font.BuildConfig(cwd=tmp_path)

    run_pipeline(config)

    glyph = TTFont(config.output_path / "iconfont.ttf")["glyf"]["box"]
    # the 4x4 box is a sixth of the 24 unit canvas
    assert glyph.xMax - glyph.xMin < 200
    assert glyph.yMax - glyph.yMin < 200


def test_css_rules_are_derived_from_records(build_config):
    result = run_pipeline(build_config)
    assert result.css_rules[0] == '.icon-home:before {\n  content: "\\E001";\n}'
    assert len(result.css_rules) == 3


def test_extra_formats_are_written(build_config):
    result = run_pipeline(replace(build_config, formats=("ttf", "woff")))

    assert [p.name for p in result.font_paths] == ["iconfont.ttf", "iconfont.woff"]
    assert (build_config.output_path / "iconfont.woff").read_bytes()[:4] == b"wOFF"


def test_custom_font_name_and_directories(tmp_path, make_icons):
    make_icons(tmp_path / "svg", {"star": HOME_SVG})
    config = build_font.BuildConfig(cwd=tmp_path, input_dir="svg", output_dir="dist", font_name="myicons")

    run_pipeline(config)

    assert (tmp_path / "dist" / "myicons.ttf").exists()
    assert (tmp_path / "dist" / MAPPING_FILE).exists()


# ---------------------------------------------------------------------------
# Input rejection
# ---------------------------------------------------------------------------

def test_empty_input_aborts_before_output_directory_exists(tmp_path):
    (tmp_path / "icon").mkdir()
    (tmp_path / "icon" / "notes.txt").write_text("no icons here", encoding="utf-8")
    config = build_font.BuildConfig(cwd=tmp_path)

    with pytest.raises(InputError):
        run_pipeline(config)
    assert not config.output_path.exists()


def test_missing_input_directory_aborts(tmp_path):
    config = build_font.BuildConfig(cwd=tmp_path)

    with pytest.raises(InputError):
        run_pipeline(config)
    assert not config.output_path.exists()


def test_generate_font_rejects_empty_glob(tmp_path):
    (tmp_path / "icon").mkdir()
    config = build_font.BuildConfig(cwd=tmp_path)

    with pytest.raises(InputError):
        generate_font(config)
    assert not config.output_path.exists()


def test_all_icons_failing_to_clean_aborts(tmp_path, make_icons):
    make_icons(tmp_path / "icon", {"broken": BROKEN_SVG})
    config = build_font.BuildConfig(cwd=tmp_path)

    with pytest.raises(InputError):
        run_pipeline(config)
    assert not config.output_path.exists()


# ---------------------------------------------------------------------------
# Cleanup
# ---------------------------------------------------------------------------

def test_clean_build_removes_previous_files(build_config):
    run_pipeline(build_config)
    output_dir = build_config.output_path
    (output_dir / "keep").mkdir()

    removed = clean_build(output_dir)

    assert sorted(p.name for p in removed) == [MAPPING_FILE, "iconfont.ttf"]
    assert [p.name for p in output_dir.iterdir()] == ["keep"]


def test_clean_build_ignores_missing_directory(tmp_path):
    assert clean_build(tmp_path / "missing") == []


def test_build_does_not_clean_stale_files(build_config):
    build_config.output_path.mkdir(parents=True)
    stale = build_config.output_path / "old.ttf"
    stale.write_bytes(b"stale")

    run_pipeline(build_config)

    assert stale.exists()


# ---------------------------------------------------------------------------
# Command line
# ---------------------------------------------------------------------------

@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    for var in ("ICONFONTIFY_INPUT_DIR", "ICONFONTIFY_OUTPUT_DIR", "ICONFONTIFY_FONT_NAME", "ICONFONTIFY_CONFIG"):
        monkeypatch.delenv(var, raising=False)
    monkeypatch.setenv("ICONFONTIFY_CWD", str(tmp_path))
    return monkeypatch


def test_main_builds_font(tmp_path, icon_dir, cli_env, capsys):
    cli_env.setattr("sys.argv", ["build_font.py"])

    build_font.main()

    assert (tmp_path / "build" / "iconfont" / "iconfont.ttf").exists()
    assert "Unicode mapping: 3 icons" in capsys.readouterr().out


def test_main_exits_non_zero_on_empty_input(tmp_path, cli_env, capsys):
    (tmp_path / "icon").mkdir()
    cli_env.setattr("sys.argv", ["build_font.py"])

    with pytest.raises(SystemExit) as excinfo:
        build_font.main()

    assert excinfo.value.code == 1
    out = capsys.readouterr().out
    assert "Error: no SVG files found" in out
    assert "add .svg icons" in out


def test_main_clean(tmp_path, icon_dir, cli_env):
    cli_env.setattr("sys.argv", ["build_font.py"])
    build_font.main()
    cli_env.setattr("sys.argv", ["build_font.py", "--clean"])

    build_font.main()

    assert list((tmp_path / "build" / "iconfont").iterdir()) == []


def test_main_rejects_unknown_arguments(cli_env):
    cli_env.setattr("sys.argv", ["build_font.py", "-x"])
    with pytest.raises(SystemExit) as excinfo:
        build_font.main()
    assert excinfo.value.code == 1
