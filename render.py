"""
SVG rendering for the impact card ("messy desk" layout).

A sticky note, a receipt, a rubber stamp and a name pill are scattered on a
desk. The chaos level controls how far each piece is rotated and nudged; the
jitter is drawn from a generator seeded by username + chaos level so the same
request always renders the same image.
"""

from __future__ import annotations

import html
from typing import Any, Dict, List, Optional

THEMES: Dict[str, Dict[str, str]] = {
    "default": {
        "bg": "#1a1b27",
        "watermark": "#2d3045",
        "sticky": "#f1fa8c",
        "sticky_text": "#282a36",
        "sticky_muted": "#44475a",
        "receipt": "#f8f8f2",
        "receipt_text": "#282a36",
        "stamp": "#ff5555",
        "pill": "#282a36",
        "pill_stroke": "#bd93f9",
        "pill_text": "#f8f8f2",
        "muted": "#6272a4",
    },
    "dark": {
        "bg": "#0d1117",
        "watermark": "#161b22",
        "sticky": "#e3b341",
        "sticky_text": "#0d1117",
        "sticky_muted": "#30363d",
        "receipt": "#c9d1d9",
        "receipt_text": "#0d1117",
        "stamp": "#f78166",
        "pill": "#161b22",
        "pill_stroke": "#58a6ff",
        "pill_text": "#e6edf3",
        "muted": "#8b949e",
    },
    "light": {
        "bg": "#f6f8fa",
        "watermark": "#eaeef2",
        "sticky": "#fff8c5",
        "sticky_text": "#24292f",
        "sticky_muted": "#656d76",
        "receipt": "#ffffff",
        "receipt_text": "#24292f",
        "stamp": "#d1242f",
        "pill": "#ffffff",
        "pill_stroke": "#0969da",
        "pill_text": "#24292f",
        "muted": "#656d76",
    },
    "dracula": {
        "bg": "#282a36",
        "watermark": "#343746",
        "sticky": "#ff79c6",
        "sticky_text": "#282a36",
        "sticky_muted": "#44475a",
        "receipt": "#f8f8f2",
        "receipt_text": "#282a36",
        "stamp": "#50fa7b",
        "pill": "#44475a",
        "pill_stroke": "#8be9fd",
        "pill_text": "#f8f8f2",
        "muted": "#6272a4",
    },
    "paper": {
        "bg": "#efe6d2",
        "watermark": "#e2d6bc",
        "sticky": "#bde0fe",
        "sticky_text": "#1d3557",
        "sticky_muted": "#457b9d",
        "receipt": "#fffdf7",
        "receipt_text": "#3d3d3d",
        "stamp": "#c1121f",
        "pill": "#3d3d3d",
        "pill_stroke": "#c1121f",
        "pill_text": "#fffdf7",
        "muted": "#8d7b68",
    },
}
DEFAULT_THEME = "default"

MIN_CHAOS = 0
MAX_CHAOS = 10

WIDTH = 800
HEIGHT = 400

FONT_HAND = "'Comic Sans MS', 'Chalkboard SE', 'Marker Felt', sans-serif"
FONT_MONO = "'Courier New', Courier, monospace"
FONT_BOLD = "'Segoe UI', Roboto, sans-serif"


# -----------------------------
# Options
# -----------------------------
def resolve_theme(name: Optional[str], fallback: str = DEFAULT_THEME) -> str:
    key = (name or "").strip().lower()
    if key in THEMES:
        return key
    return fallback if fallback in THEMES else DEFAULT_THEME


def clamp_chaos(value: Any, default: int = 3) -> int:
    try:
        level = int(str(value).strip())
    except (TypeError, ValueError):
        level = default
    return max(MIN_CHAOS, min(MAX_CHAOS, level))


class SeededRandom:
    """
    Linear congruential generator (Numerical Recipes constants).

    Kept separate from the `random` module so jitter never depends on global
    state and reproduces across processes.
    """

    MODULUS = 2 ** 32
    MULTIPLIER = 1664525
    INCREMENT = 1013904223

    def __init__(self, seed: int) -> None:
        self.state = seed % self.MODULUS

    @classmethod
    def from_key(cls, key: str) -> "SeededRandom":
        # str hash() is salted per process, so fold the bytes by hand.
        h = 0
        for byte in key.encode("utf-8"):
            h = (h * 31 + byte) % cls.MODULUS
        return cls(h)

    def random(self) -> float:
        self.state = (self.state * self.MULTIPLIER + self.INCREMENT) % self.MODULUS
        return self.state / self.MODULUS

    def uniform(self, lo: float, hi: float) -> float:
        return lo + (hi - lo) * self.random()


def _jitter(rng: SeededRandom, chaos: int, spread: float) -> float:
    if not chaos:
        return 0.0
    return round(rng.uniform(-1.0, 1.0) * spread * chaos / MAX_CHAOS, 2)


def _esc(value: Any) -> str:
    return html.escape(str(value), quote=True)


def _fmt(n: int) -> str:
    if n >= 1_000_000:
        return f"{n // 1_000_000}.{n // 100_000 % 10}M"
    if n >= 10_000:
        return f"{n // 1_000}.{n // 100 % 10}k"
    return str(n)


def _dots(label: str, value: Any, width: int = 26) -> str:
    value = str(value)
    fill = max(2, width - len(label) - len(value))
    return f"{label} {'.' * fill} {value}"


# -----------------------------
# Card pieces
# -----------------------------
def _sticky_note(m: Dict[str, Any], t: Dict[str, str], rot: float, dx: float, dy: float) -> str:
    return f"""
  <g transform="translate({60 + dx}, {50 + dy}) rotate({-6 + rot})">
    <rect x="5" y="5" width="220" height="190" fill="rgba(0,0,0,0.4)" />
    <rect x="0" y="0" width="220" height="190" fill="{t['sticky']}" stroke="rgba(0,0,0,0.1)" />
    <rect x="85" y="-15" width="50" height="25" fill="rgba(255,255,255,0.25)" transform="rotate(2)" />
    <text x="20" y="36" font-size="18" fill="{t['sticky_muted']}" font-family="{FONT_HAND}" font-weight="bold">Total Commits:</text>
    <text x="110" y="100" font-size="54" text-anchor="middle" fill="{t['sticky_text']}" font-family="{FONT_HAND}" font-weight="bold">{_esc(_fmt(m['commits']))}</text>
    <text x="20" y="140" font-size="14" fill="{t['sticky_muted']}" font-family="{FONT_HAND}">streak: {m['currentStreak']}d (best {m['longestStreak']}d)</text>
    <text x="20" y="162" font-size="14" fill="{t['sticky_muted']}" font-family="{FONT_HAND}">busiest day: {_esc(m['mostActiveWeekday'])}</text>
    <text x="20" y="182" font-size="12" fill="{t['sticky_muted']}" font-family="{FONT_HAND}">coding since {m['createdYear'] or '?'} ({m['accountAgeYears']}y)</text>
  </g>"""


def _receipt_lines(m: Dict[str, Any]) -> List[str]:
    lines = [
        f"USER: {m['username']}",
        "-" * 26,
        _dots("REVIEWS GIVEN", m["reviews"]),
        _dots("PRS", m["prs"]),
        _dots("DISCUSSIONS", m["discussions"]),
        _dots("ISSUES CLOSED", m["closedIssues"]),
        _dots("STARS EARNED", m["stars"]),
        _dots("FORKS", m["forks"]),
        _dots("FOLLOWERS", m["followers"]),
        "-" * 26,
    ]
    for lang in m["topLanguages"]:
        lines.append(_dots(lang["name"][:16].upper(), f"{lang['percent']}%"))
    return lines


def _receipt(m: Dict[str, Any], t: Dict[str, str], rot: float, dx: float, dy: float) -> str:
    lines = _receipt_lines(m)
    height = 70 + 20 * len(lines) + 30
    rows = "\n".join(
        f'    <text x="20" y="{70 + 20 * i}" font-size="12" fill="{t["receipt_text"]}" font-family="{FONT_MONO}">{_esc(line)}</text>'
        for i, line in enumerate(lines)
    )
    return f"""
  <g transform="translate({500 + dx}, {30 + dy}) rotate({3 + rot})">
    <rect x="5" y="5" width="250" height="{height}" fill="rgba(0,0,0,0.5)" />
    <rect x="0" y="0" width="250" height="{height}" fill="{t['receipt']}" />
    <text x="125" y="30" text-anchor="middle" font-family="{FONT_MONO}" font-weight="bold" font-size="14" fill="{t['receipt_text']}">GITHUB_ACTIVITY.LOG</text>
    <line x1="20" y1="40" x2="230" y2="40" stroke="#444" stroke-dasharray="4" />
{rows}
    <text x="125" y="{height - 15}" text-anchor="middle" font-family="{FONT_MONO}" font-size="10" fill="{t['receipt_text']}">THANK YOU FOR CODING</text>
    <rect x="100" y="-10" width="50" height="20" fill="rgba(255,255,255,0.25)" />
  </g>"""


def _stamp(m: Dict[str, Any], t: Dict[str, str], rot: float, dx: float, dy: float) -> str:
    rank = m["rank"]
    return f"""
  <g transform="translate({330 + dx}, {210 + dy}) rotate({-10 + rot})" opacity="0.9">
    <circle cx="0" cy="0" r="78" fill="none" stroke="{t['stamp']}" stroke-width="3" stroke-dasharray="8,4" />
    <circle cx="0" cy="0" r="66" fill="none" stroke="{t['stamp']}" stroke-width="1" />
    <text x="0" y="-32" text-anchor="middle" font-size="13" fill="{t['stamp']}" font-family="{FONT_BOLD}" font-weight="900">IMPACT SCORE</text>
    <text x="0" y="14" text-anchor="middle" font-size="44" fill="{t['stamp']}" font-family="{FONT_BOLD}" font-weight="900">{_esc(_fmt(m['impactScore']))}</text>
    <text x="0" y="42" text-anchor="middle" font-size="14" fill="{t['stamp']}" font-family="{FONT_BOLD}" font-weight="900">{_esc(rank['level'])} · {_esc(rank['title'])}</text>
  </g>"""


def _name_pill(m: Dict[str, Any], t: Dict[str, str], rot: float, dx: float, dy: float) -> str:
    repos = ", ".join(r["name"] for r in m["topRepos"])
    return f"""
  <g transform="translate({50 + dx}, {310 + dy}) rotate({rot})">
    <rect x="0" y="0" width="340" height="60" rx="30" fill="{t['pill']}" stroke="{t['pill_stroke']}" stroke-width="2" />
    <text x="170" y="28" text-anchor="middle" fill="{t['pill_text']}" font-size="20" font-family="{FONT_BOLD}" font-weight="800">@{_esc(m['username'])}</text>
    <text x="170" y="48" text-anchor="middle" fill="{t['pill_text']}" font-size="12" font-family="{FONT_BOLD}">{_esc(m['persona'])}</text>
  </g>
  <text x="50" y="392" fill="{t['muted']}" font-size="11" font-family="{FONT_MONO}">{_esc('top repos: ' + repos) if repos else ''}</text>"""


# -----------------------------
# Public API
# -----------------------------
def render_card(metrics: Dict[str, Any], theme: Optional[str] = None, chaos: Any = 3) -> str:
    """
    Render the metrics record as an SVG document.

    Output is a pure function of (metrics, theme, chaos).
    """
    t = THEMES[resolve_theme(theme)]
    level = clamp_chaos(chaos)
    rng = SeededRandom.from_key(f"{metrics.get('username', '')}:{level}")

    pieces = []
    for piece in (_sticky_note, _receipt, _stamp, _name_pill):
        rot = _jitter(rng, level, 8.0)
        dx = _jitter(rng, level, 12.0)
        dy = _jitter(rng, level, 12.0)
        pieces.append(piece(metrics, t, rot, dx, dy))

    title = f"GitHub impact card for {metrics.get('name') or metrics.get('username', '')}"
    return f"""<svg width="{WIDTH}" height="{HEIGHT}" viewBox="0 0 {WIDTH} {HEIGHT}" xmlns="http://www.w3.org/2000/svg" role="img" aria-label="{_esc(title)}">
  <title>{_esc(title)}</title>
  <rect width="100%" height="100%" fill="{t['bg']}" />
  <text x="50%" y="90" text-anchor="middle" fill="{t['watermark']}" font-size="120" font-weight="900" font-family="{FONT_BOLD}" transform="rotate(-2, 400, 200)">IMPACT</text>
{''.join(pieces)}
</svg>
"""


def render_error(message: str, max_length: int = 120) -> str:
    text = message if len(message) <= max_length else message[: max_length - 3] + "..."
    return f"""<svg width="{WIDTH}" height="100" viewBox="0 0 {WIDTH} 100" xmlns="http://www.w3.org/2000/svg" role="img" aria-label="Error">
  <rect width="100%" height="100%" rx="8" fill="#1a1b27" />
  <text x="20" y="40" fill="#ff5555" font-size="16" font-family="{FONT_BOLD}" font-weight="800">Error</text>
  <text x="20" y="68" fill="#f8f8f2" font-size="13" font-family="{FONT_MONO}">{_esc(text)}</text>
</svg>
"""
