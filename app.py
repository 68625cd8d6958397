#!/usr/bin/env python3
"""webgrep web application."""

from __future__ import annotations

from flask import Flask, jsonify, request

import webgrep

app = Flask(__name__)


def requested_category() -> str:
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        payload = {}
    value = payload.get("category") or request.form.get("category") or request.args.get("category") or ""
    if not isinstance(value, str):
        raise webgrep.ArgumentError(f"category must be a string, got {type(value).__name__}")
    return value.strip()


@app.route("/api/fonts", methods=["GET", "POST"])
def system_fonts():
    try:
        category = webgrep.Category.from_argument(requested_category())
    except webgrep.ArgumentError as exc:
        return jsonify({"error": str(exc)}), 400

    try:
        code = webgrep.SystemFontsPipeline(fetch=webgrep.fetch_text).run(category)
    except (webgrep.FetchError, webgrep.ParseError) as exc:
        summary, hints = webgrep.classify_fetch_error(exc)
        return jsonify({"error": summary, "hints": hints, "detail": str(exc)}), 502
    return code, 200, {"Content-Type": "text/plain; charset=utf-8"}


if __name__ == "__main__":
    app.run(host="0.0.0.0", port=8000, debug=False)
