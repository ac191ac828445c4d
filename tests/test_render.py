"""
SVG card rendering: theme/chaos options, seeded jitter and escaping.
"""
import datetime as dt
import xml.etree.ElementTree as ET

from metrics import build_metrics
from render import SeededRandom, clamp_chaos, render_card, render_error, resolve_theme

NOW = dt.datetime(2024, 6, 15, tzinfo=dt.timezone.utc)

METRICS = build_metrics(
    {
        "login": "octocat",
        "name": "<script>alert(1)</script>",
        "contributionsCollection": {"totalCommitContributions": 1234},
        "repositories": {"nodes": [{"name": "hello-world", "stargazerCount": 80, "primaryLanguage": {"name": "C++", "color": "#f34b7d"}}]},
    },
    NOW,
)


def test_resolve_theme_falls_back_to_baseline():
    assert resolve_theme("DRACULA") == "dracula"
    assert resolve_theme("neon") == "default"
    assert resolve_theme(None) == "default"
    assert resolve_theme("neon", fallback="paper") == "paper"


def test_chaos_is_clamped():
    assert clamp_chaos("-4") == 0
    assert clamp_chaos("99") == 10
    assert clamp_chaos("7") == 7
    assert clamp_chaos("lots", default=2) == 2


def test_seeded_random_is_reproducible():
    a = SeededRandom.from_key("octocat:5")
    b = SeededRandom.from_key("octocat:5")
    c = SeededRandom.from_key("octocat:6")
    seq_a = [a.random() for _ in range(5)]
    assert seq_a == [b.random() for _ in range(5)]
    assert seq_a != [c.random() for _ in range(5)]
    assert all(0.0 <= x < 1.0 for x in seq_a)


def test_card_is_deterministic_per_username_and_chaos():
    assert render_card(METRICS, "dark", 5) == render_card(METRICS, "dark", 5)
    assert render_card(METRICS, "dark", 5) != render_card(METRICS, "dark", 9)


def test_zero_chaos_has_no_jitter():
    other = dict(METRICS, username="someone-else")
    # Only the username text differs when nothing is nudged.
    assert render_card(METRICS, chaos=0).replace("octocat", "X") == render_card(other, chaos=0).replace("someone-else", "X")


def test_card_is_well_formed_and_escaped():
    svg = render_card(METRICS, "paper", 10)
    root = ET.fromstring(svg)
    assert root.tag.endswith("svg")
    assert "<script>" not in svg
    assert "1234" in svg
    assert "C++" in svg
    assert "hello-world" in svg


def test_error_card_truncates_long_messages():
    svg = render_error("x" * 500)
    ET.fromstring(svg)
    assert "x" * 117 + "..." in svg
    assert "x" * 118 not in svg


def test_card_renders_huge_counters():
    huge = build_metrics({"login": "octocat", "contributionsCollection": {"totalCommitContributions": 10 ** 400}}, NOW)
    svg = render_card(huge, chaos=2)
    ET.fromstring(svg)
    assert "M</text>" in svg
