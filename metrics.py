"""
Metrics derivation for the impact card.

Turns the raw GraphQL `user` object into a flat, fully-defaulted metrics
record. Every function here is pure: the only ambient input is the current
time, which callers pass in explicitly.
"""

from __future__ import annotations

import datetime as dt
import math
from typing import Any, Dict, List, Optional, Tuple

WEEKDAYS = ["Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"]

DEFAULT_LANGUAGE_COLOR = "#858585"
TOP_REPOS_LIMIT = 3
TOP_LANGUAGES_LIMIT = 4

# Evaluated top-down, strictly greater than.
RANK_TIERS: List[Tuple[int, str, str]] = [
    (2000, "S+", "LEGEND"),
    (1000, "S", "MASTER"),
    (500, "A+", "SENIOR"),
    (250, "A", "EXPERT"),
    (100, "B", "BUILDER"),
    (50, "C", "CODER"),
]
BASE_RANK = ("D", "ROOKIE")

# (counter, threshold, label); order is priority, not magnitude.
PERSONA_CASCADE: List[Tuple[str, int, str]] = [
    ("reviews", 100, "Code Guardian"),
    ("stars", 500, "Star Collector"),
    ("prs", 200, "PR Machine"),
    ("commits", 2000, "Commit Warrior"),
    ("issues", 100, "Issue Hunter"),
    ("discussions", 50, "Community Voice"),
    ("reviews", 50, "Review Master"),
    ("stars", 100, "Rising Star"),
    ("prs", 50, "Merge Master"),
]
DEFAULT_PERSONA = "Code Explorer"

# Weights in tenths; the sum stays in int arithmetic so huge counters cannot overflow.
IMPACT_WEIGHTS = {
    "reviews": 30,
    "discussions": 20,
    "commits": 1,
    "stars": 20,
    "prs": 15,
    "closedIssues": 10,
}


# -----------------------------
# Defaulting helpers
# -----------------------------
def _obj(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _list(value: Any) -> List[Any]:
    return value if isinstance(value, list) else []


def _count(value: Any) -> int:
    """
    Coerce a counter to a non-negative int; anything unusable becomes 0.
    """
    if isinstance(value, bool):
        return 0
    if isinstance(value, float):
        if not math.isfinite(value):
            return 0
        value = int(value)
    if not isinstance(value, int):
        try:
            value = int(str(value).strip())
        except (TypeError, ValueError):
            return 0
    return max(0, value)


def _total(parent: Dict[str, Any], key: str) -> int:
    return _count(_obj(parent.get(key)).get("totalCount"))


def _text(value: Any) -> str:
    return value if isinstance(value, str) else ""


def _dateparse(s: Any) -> Optional[dt.datetime]:
    if not isinstance(s, str) or not s:
        return None
    try:
        parsed = dt.datetime.fromisoformat(s.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt.timezone.utc)
    return parsed


def _parse_day(s: Any) -> Optional[dt.date]:
    if not isinstance(s, str) or not s:
        return None
    try:
        return dt.date.fromisoformat(s[:10])
    except ValueError:
        return None


def _now_utc() -> dt.datetime:
    return dt.datetime.now(dt.timezone.utc)


def _calendar_days(calendar: Any) -> List[Dict[str, Any]]:
    days: List[Dict[str, Any]] = []
    for week in _list(_obj(calendar).get("weeks")):
        for day in _list(_obj(week).get("contributionDays")):
            if isinstance(day, dict):
                days.append(day)
    return days


# -----------------------------
# Streaks
# -----------------------------
def calculate_streaks(calendar: Any, today: Optional[dt.date] = None) -> Dict[str, int]:
    """
    Current and longest run of days with contributions.

    The current streak is counted backwards from the most recent day and only
    if that run reaches today or yesterday. A zero-contribution *today* is
    skipped instead of ending the run, since today is still in progress.
    """
    if not calendar:
        return {"current": 0, "longest": 0}
    if today is None:
        today = _now_utc().date()
    yesterday = today - dt.timedelta(days=1)

    days: List[Tuple[dt.date, int]] = []
    for d in _calendar_days(calendar):
        day = _parse_day(d.get("date"))
        if day is None:
            continue
        days.append((day, _count(d.get("contributionCount"))))
    # Weeks arrive week-major; sorted() is stable.
    days = sorted(days, key=lambda item: item[0])

    longest = 0
    running = 0
    for _, count in days:
        if count > 0:
            running += 1
            longest = max(longest, running)
        else:
            running = 0

    current = 0
    for day, count in reversed(days):
        # Calendars rendered in a timezone ahead of ours can end tomorrow.
        if day > today:
            continue
        if day < yesterday and current == 0:
            break
        if count > 0:
            current += 1
        elif day != today:
            break

    return {"current": current, "longest": longest}


# -----------------------------
# Weekday
# -----------------------------
def _weekday_index(day: Dict[str, Any]) -> Optional[int]:
    idx = day.get("weekday")
    if isinstance(idx, int) and not isinstance(idx, bool) and 0 <= idx <= 6:
        return idx
    parsed = _parse_day(day.get("date"))
    if parsed is None:
        return None
    # date.weekday() is Monday-first.
    return (parsed.weekday() + 1) % 7


def most_active_weekday(calendar: Any) -> str:
    if not calendar:
        return WEEKDAYS[0]

    totals = [0] * 7
    for d in _calendar_days(calendar):
        idx = _weekday_index(d)
        if idx is not None:
            totals[idx] += _count(d.get("contributionCount"))

    best = 0
    for i in range(1, 7):
        if totals[i] > totals[best]:
            best = i
    return WEEKDAYS[best]


# -----------------------------
# Classifiers
# -----------------------------
def rank_for_score(score: int) -> Dict[str, str]:
    for threshold, level, title in RANK_TIERS:
        if score > threshold:
            return {"level": level, "title": title}
    level, title = BASE_RANK
    return {"level": level, "title": title}


def classify_persona(
    *,
    reviews: int = 0,
    stars: int = 0,
    prs: int = 0,
    commits: int = 0,
    issues: int = 0,
    discussions: int = 0,
) -> str:
    counters = {
        "reviews": reviews,
        "stars": stars,
        "prs": prs,
        "commits": commits,
        "issues": issues,
        "discussions": discussions,
    }
    for key, threshold, label in PERSONA_CASCADE:
        if counters[key] > threshold:
            return label
    return DEFAULT_PERSONA


def impact_score(
    *,
    reviews: int = 0,
    discussions: int = 0,
    commits: int = 0,
    stars: int = 0,
    prs: int = 0,
    closed_issues: int = 0,
) -> int:
    raw = (
        reviews * IMPACT_WEIGHTS["reviews"]
        + discussions * IMPACT_WEIGHTS["discussions"]
        + commits * IMPACT_WEIGHTS["commits"]
        + stars * IMPACT_WEIGHTS["stars"]
        + prs * IMPACT_WEIGHTS["prs"]
        + closed_issues * IMPACT_WEIGHTS["closedIssues"]
    )
    return max(0, raw // 10)


# -----------------------------
# Repositories & languages
# -----------------------------
def _round_half_up(x: float) -> int:
    return int(math.floor(x + 0.5))


def top_languages(repos: List[Any], limit: int = TOP_LANGUAGES_LIMIT) -> List[Dict[str, Any]]:
    """
    Share of repositories per primary language, most common first.

    Percentages are relative to repositories with a known language, so the
    returned slice sums to at most 100.
    """
    counts: Dict[str, int] = {}
    colors: Dict[str, str] = {}
    for r in repos:
        lang = _obj(_obj(r).get("primaryLanguage"))
        name = _text(lang.get("name"))
        if not name:
            continue
        counts[name] = counts.get(name, 0) + 1
        if name not in colors:
            colors[name] = _text(lang.get("color"))

    total = sum(counts.values())
    if not total:
        return []

    ordered = sorted(counts.items(), key=lambda kv: kv[1], reverse=True)[:limit]
    return [
        {
            "name": name,
            "color": colors.get(name) or DEFAULT_LANGUAGE_COLOR,
            "percent": _round_half_up(count / total * 100),
        }
        for name, count in ordered
    ]


def top_repositories(repos: List[Any], limit: int = TOP_REPOS_LIMIT) -> List[Dict[str, Any]]:
    out: List[Dict[str, Any]] = []
    for r in repos[:limit]:
        r = _obj(r)
        name = _text(r.get("name"))
        if name:
            out.append({"name": name, "stars": _count(r.get("stargazerCount"))})
    return out


# -----------------------------
# Aggregator
# -----------------------------
def build_metrics(user: Any, now: Optional[dt.datetime] = None) -> Dict[str, Any]:
    """
    Build the metrics record for one GraphQL `user` object.

    Never raises: missing or malformed fields fall back to zero/empty values.
    """
    user = _obj(user)
    if now is None:
        now = _now_utc()
    elif now.tzinfo is None:
        now = now.replace(tzinfo=dt.timezone.utc)

    cc = _obj(user.get("contributionsCollection"))
    calendar = cc.get("contributionCalendar")
    repos = _list(_obj(user.get("repositories")).get("nodes"))

    commits = _count(cc.get("totalCommitContributions"))
    reviews = _count(cc.get("totalPullRequestReviewContributions"))
    discussions = _total(user, "repositoryDiscussionComments")
    closed_issues = _total(user, "issues")
    prs = _total(user, "pullRequests")
    stars = sum(_count(_obj(r).get("stargazerCount")) for r in repos)
    forks = sum(_count(_obj(r).get("forkCount")) for r in repos)

    created_at = _dateparse(user.get("createdAt"))
    if created_at:
        age_days = (now - created_at).total_seconds() / 86400.0
        account_age_years = max(0, int(math.floor(age_days / 365.25)))
        created_year = created_at.year
    else:
        account_age_years = 0
        created_year = 0

    streaks = calculate_streaks(calendar, now.date())
    score = impact_score(
        reviews=reviews,
        discussions=discussions,
        commits=commits,
        stars=stars,
        prs=prs,
        closed_issues=closed_issues,
    )
    login = _text(user.get("login"))

    return {
        "username": login,
        "name": _text(user.get("name")) or login,
        "avatarUrl": _text(user.get("avatarUrl")),
        "commits": commits,
        "reviews": reviews,
        "discussions": discussions,
        "closedIssues": closed_issues,
        "prs": prs,
        "stars": stars,
        "forks": forks,
        "followers": _total(user, "followers"),
        "following": _total(user, "following"),
        "gists": _total(user, "gists"),
        "sponsorships": _total(user, "sponsorshipsAsMaintainer"),
        "orgs": _total(user, "organizations"),
        "topRepos": top_repositories(repos),
        "topLanguages": top_languages(repos),
        "currentStreak": streaks["current"],
        "longestStreak": streaks["longest"],
        "mostActiveWeekday": most_active_weekday(calendar),
        "accountAgeYears": account_age_years,
        "createdYear": created_year,
        "impactScore": score,
        "rank": rank_for_score(score),
        "persona": classify_persona(
            reviews=reviews,
            stars=stars,
            prs=prs,
            commits=commits,
            issues=closed_issues,
            discussions=discussions,
        ),
    }
