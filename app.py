"""
GitHub Impact Card (Flask)

What it does:
- Accepts a GitHub username
- Fetches public activity via one GitHub GraphQL query
- Derives an impact score, rank, persona, streaks, busiest weekday and
  language mix (see metrics.py)
- Renders everything as an embeddable "messy desk" SVG card

Setup:
  pip install -e .

Run:
  export GH_TOKEN="github_pat_..."   # required (GraphQL)
  python app.py
  open http://localhost:5000/api?username=octocat

Endpoints:
  GET  /                                        -> usage page
  GET  /api?username=&theme=&chaos=             -> SVG card (alias: /api/card)
  GET  /api/metrics?username=                   -> metrics record as JSON
  GET  /healthz                                 -> liveness + token check

Errors on the card endpoints are rendered as SVG too, so a broken embed shows
a readable message instead of a broken image icon.
"""

from __future__ import annotations

import logging
import os
import re
from typing import Optional, Tuple

from flask import Flask, Response, jsonify, request

import github_client
from github_client import GitHubAPIError, UserNotFound
from metrics import build_metrics
from render import DEFAULT_THEME as BASE_THEME, clamp_chaos, render_card, render_error, resolve_theme

# -----------------------------
# Config
# -----------------------------
CACHE_MAX_AGE = int(os.getenv("CACHE_MAX_AGE", "14400"))
DEFAULT_THEME = os.getenv("DEFAULT_THEME", BASE_THEME)
DEFAULT_CHAOS = clamp_chaos(os.getenv("DEFAULT_CHAOS", "3"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

# Username validation (GitHub allows alnum and hyphen; max length 39)
USERNAME_RE = re.compile(r"^[A-Za-z0-9-]{1,39}$")

ALL_METHODS = ["GET", "HEAD", "OPTIONS", "POST", "PUT", "PATCH", "DELETE"]

logger = logging.getLogger("impact_card")
if not logger.handlers:
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    logger.addHandler(handler)
logger.setLevel(getattr(logging, LOG_LEVEL, logging.INFO))

# -----------------------------
# Flask app
# -----------------------------
app = Flask(__name__)


class CardError(Exception):
    """
    A request that ends in an error card. `status` is the HTTP status to send.
    """

    def __init__(self, message: str, status: int) -> None:
        super().__init__(message)
        self.message = message
        self.status = status


# -----------------------------
# Response helpers
# -----------------------------
def _cors(resp: Response) -> Response:
    resp.headers["Access-Control-Allow-Origin"] = "*"
    resp.headers["Access-Control-Allow-Methods"] = "GET"
    return resp


def _svg(body: str, status: int = 200) -> Response:
    resp = Response(body, status=status, mimetype="image/svg+xml")
    if status == 200:
        resp.headers["Cache-Control"] = f"public, max-age={CACHE_MAX_AGE}, s-maxage={CACHE_MAX_AGE}"
    else:
        resp.headers["Cache-Control"] = "no-store"
    return _cors(resp)


def _method_not_allowed() -> Response:
    resp = jsonify({"error": "Method not allowed"})
    resp.status_code = 405
    resp.headers["Allow"] = "GET"
    resp.headers["Cache-Control"] = "no-store"
    return _cors(resp)


# -----------------------------
# Request pipeline
# -----------------------------
def _get_username_from_request() -> str:
    return (request.args.get("username") or "").strip()


def _load_metrics(username: str) -> dict:
    """
    Validate the request, fetch the profile and derive its metrics.

    Raises CardError with the status the caller should answer with.
    """
    token = github_client.get_token()
    if not token:
        logger.error("GH_TOKEN is not configured")
        raise CardError("Missing GH_TOKEN in environment variables.", 500)

    if not username:
        raise CardError("Missing 'username' query parameter.", 400)

    if not USERNAME_RE.match(username):
        raise CardError("Invalid GitHub username format.", 400)

    try:
        user = github_client.fetch_user(token, username)
    except UserNotFound:
        logger.info("user not found: %s", username)
        raise CardError("User not found on GitHub.", 404)
    except GitHubAPIError as e:
        logger.warning("GitHub request for %s failed: %s", username, e)
        raise CardError(str(e), 502)
    except Exception as e:
        logger.exception("unexpected error while fetching %s", username)
        raise CardError(f"Unexpected server error: {e}", 500)

    return build_metrics(user)


def _card_options() -> Tuple[str, int]:
    theme = resolve_theme(request.args.get("theme"), fallback=DEFAULT_THEME)
    raw_chaos: Optional[str] = request.args.get("chaos")
    chaos = clamp_chaos(raw_chaos, default=DEFAULT_CHAOS) if raw_chaos is not None else DEFAULT_CHAOS
    return theme, chaos


# -----------------------------
# Flask routes
# -----------------------------
@app.route("/", methods=["GET"])
def home():
    return (
        """
        <!doctype html>
        <html>
        <head><meta charset="utf-8"><title>GitHub Impact Card</title></head>
        <body style="font-family: system-ui, -apple-system, Segoe UI, Roboto, sans-serif; padding: 24px;">
          <h2>GitHub Impact Card is running</h2>
          <p>Embed: <code>&lt;img src="/api?username=octocat&amp;theme=dracula&amp;chaos=5" /&gt;</code></p>
          <p>Themes: default, dark, light, dracula, paper. Chaos: 0 (tidy) to 10 (messy).</p>
          <p>Raw numbers: <code>/api/metrics?username=octocat</code></p>
        </body>
        </html>
        """,
        200,
        {"Content-Type": "text/html; charset=utf-8"},
    )


@app.route("/api", methods=ALL_METHODS)
@app.route("/api/card", methods=ALL_METHODS)
def api_card():
    if request.method != "GET":
        return _method_not_allowed()

    try:
        metrics = _load_metrics(_get_username_from_request())
    except CardError as e:
        return _svg(render_error(f"Error: {e.message}"), e.status)

    theme, chaos = _card_options()
    try:
        svg = render_card(metrics, theme=theme, chaos=chaos)
    except Exception as e:
        logger.exception("failed to render card for %s", metrics.get("username"))
        return _svg(render_error(f"Error: {e}"), 500)
    return _svg(svg)


@app.route("/api/metrics", methods=ALL_METHODS)
def api_metrics():
    if request.method != "GET":
        return _method_not_allowed()

    try:
        metrics = _load_metrics(_get_username_from_request())
    except CardError as e:
        resp = jsonify({"error": e.message})
        resp.status_code = e.status
        resp.headers["Cache-Control"] = "no-store"
        return _cors(resp)
    return _cors(jsonify(metrics))


@app.route("/healthz", methods=["GET"])
def healthz():
    return jsonify({"ok": True, "token_configured": bool(github_client.get_token())})


if __name__ == "__main__":
    port = int(os.getenv("PORT", "5000"))
    app.run(host="0.0.0.0", port=port, debug=os.getenv("FLASK_DEBUG") == "1")
