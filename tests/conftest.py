from datetime import datetime, timezone

import pytest

import webgrep

FROZEN = datetime(2024, 6, 10, 18, 30, 0, tzinfo=timezone.utc)

PAGE = """<!doctype html>
<html>
<head><title>Fonts - Apple Developer</title></head>
<body>
  <ul class="font-list">
    <li class="font-item">
      <h3 class="filter-font-name">SF Pro</h3>
      <p class="font-platform">Platform: iOS system font</p>
    </li>
    <li class="font-item">
      <h3 class="filter-font-name">Menlo</h3>
      <p class="font-platform">Platform: macOS system font</p>
    </li>
    <li class="font-item featured">
      <h3 class="filter-font-name">New York</h3>
      <p class="font-platform">Platform: iOS system font, macOS system font</p>
    </li>
  </ul>
</body>
</html>
"""


class FrozenDatetime(datetime):
    @classmethod
    def now(cls, tz=None):
        return FROZEN if tz is None else FROZEN.astimezone(tz)


@pytest.fixture
def frozen_clock(monkeypatch):
    monkeypatch.setattr(webgrep, "datetime", FrozenDatetime)
    return FROZEN


@pytest.fixture
def fetched(monkeypatch):
    """Replace the network with the canned page; records every URL requested."""
    calls = []

    def fake_fetch_text(url, timeout=webgrep.DEFAULT_TIMEOUT):
        calls.append(url)
        return PAGE

    monkeypatch.setattr(webgrep, "fetch_text", fake_fetch_text)
    return calls
