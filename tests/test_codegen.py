import pytest

from webgrep import Category, as_identifier, render_code

from conftest import FROZEN


@pytest.mark.parametrize(
    "name, expected",
    [
        ("SF Pro", "sFPro"),
        ("SF Pro Rounded", "sFProRounded"),
        ("New York", "newYork"),
        ("Helvetica Neue", "helveticaNeue"),
        ("Menlo", "menlo"),
        ("A-B.C+D=E", "aBCDE"),
        ("Font (Variable), Bold", "fontVariableBold"),
        ("Price$Tag", "price$Tag"),
        ("Font^2", "font2"),
        ("Kappaϰ", "kappa"),
        ("Unit\x1fSeparator", "unit\x1fSeparator"),
        ("Éclair\tDisplay", "éclairDisplay"),
        ("  ", ""),
        ("", ""),
    ],
)
def test_as_identifier(name, expected):
    assert as_identifier(name) == expected


def test_as_identifier_is_idempotent():
    for name in ("SF Pro", "New York", "Apple Color Emoji", "x+y=z"):
        once = as_identifier(name)
        assert as_identifier(once) == once


def test_render_code_layout():
    out = render_code(["SF Pro", "New York"], Category.IOS, now=FROZEN)
    banner = [
        "// Generated: For iOS system font on 2024-06-10 18:30:00 +0000, 2 fonts",
        "// Extracted from https://developer.apple.com/fonts/system-fonts/",
    ]
    assert out.splitlines() == banner + ['case sFPro = "SF Pro"', 'case newYork = "New York"'] + banner
    assert out.endswith("\n")


def test_render_code_empty_has_zero_count_and_no_cases():
    lines = render_code([], Category.MACOS, now=FROZEN).splitlines()
    assert len(lines) == 4
    assert lines[0] == "// Generated: For macOS system font on 2024-06-10 18:30:00 +0000, 0 fonts"
    assert lines[:2] == lines[2:]
    assert not any(line.startswith("case ") for line in lines)


def test_render_code_keeps_colliding_identifiers():
    out = render_code(["SF-Pro", "SF Pro"], Category.IOS, url="https://example.test/", now=FROZEN)
    assert out.count("case sFPro = ") == 2
    assert "// Extracted from https://example.test/" in out
