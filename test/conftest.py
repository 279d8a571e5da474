import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parent.parent
sys.path.insert(0, str(ROOT))

from iconfont_config import BuildConfig  # noqa: E402


HOME_SVG = """<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24">
  <path d="M12 3L2 12h3v8h6v-6h2v6h6v-8h3L12 3z"/>
</svg>
"""

# Figma-style export: canvas rect, fill on every shape
USER_SVG = """<svg xmlns="http://www.w3.org/2000/svg" width="24" height="24" viewBox="0 0 24 24" fill="none">
  <rect width="24" height="24" fill="white"/>
  <circle cx="12" cy="8" r="4" fill="#000"/>
  <path d="M4 20c0-4 4-6 8-6s8 2 8 6z" fill="#000"/>
</svg>
"""

# clip-path wrapper, transparent decoy square and a defs block
SEARCH_SVG = """<svg xmlns="http://www.w3.org/2000/svg" width="24" height="24" viewBox="0 0 24 24" fill="none">
  <g clip-path="url(#clip0)">
    <path d="M0 0h24v24H0z" fill="#fff" fill-opacity="0"/>
    <path fill-rule="evenodd" d="M10 2a8 8 0 015.3 14l6.4 6.3-1.4 1.4-6.3-6.4A8 8 0 1110 2zm0 2a6 6 0 100 12 6 6 0 000-12z" fill="#1F2329"/>
  </g>
  <defs>
    <clipPath id="clip0"><rect width="24" height="24" fill="#fff"/></clipPath>
  </defs>
</svg>
"""

BROKEN_SVG = """<svg xmlns="http://www.w3.org/2000/svg" viewBox="0 0 24 24"><path d="M0 0h4v4z"></svg>"""

DEFAULT_ICONS = {"home": HOME_SVG, "user": USER_SVG, "search": SEARCH_SVG}


@pytest.fixture
def make_icons():
    """Write ``{name: markup}`` as ``name.svg`` files into a directory."""
    def write(directory: Path, icons: dict[str, str]) -> Path:
        directory.mkdir(parents=True, exist_ok=True)
        for name, markup in icons.items():
            (directory / f"{name}.svg").write_text(markup, encoding="utf-8")
        return directory
    return write


@pytest.fixture
def icon_dir(tmp_path, make_icons):
    return make_icons(tmp_path / "icon", DEFAULT_ICONS)


@pytest.fixture
def build_config(tmp_path, icon_dir):
    return BuildConfig(cwd=tmp_path)
