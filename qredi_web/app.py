import os
import re
from uuid import uuid4

from flask import Flask, jsonify, render_template, request, session, redirect, url_for

from qredi_calc.engine import DEFAULT_STRATEGY, STRATEGIES, simulate
from qredi_calc.errors import SimulatorError
from qredi_calc.extraction import DEFAULT_EXTRACTION_URL, ExtractionClient
from qredi_calc.formatter import result_to_dict
from qredi_calc.sharing import (
    DEFAULT_SHORTENER_URL,
    LinkShortener,
    SHARE_PATH,
    build_share_url,
    decode_share_payload,
)
from qredi_web.section_store import create_store_from_env

app = Flask(__name__)
app.config["ASSET_VERSION"] = os.environ.get("ASSET_VERSION", "1")
app.secret_key = os.environ.get("FLASK_SECRET_KEY", "dev-secret-key")
section_store = create_store_from_env(os.environ.get("QREDI_DATABASE_URL"))
extraction_client = ExtractionClient(os.environ.get("QREDI_EXTRACTION_URL", DEFAULT_EXTRACTION_URL))
link_shortener = LinkShortener(
    os.environ.get("QREDI_SHORTENER_URL", DEFAULT_SHORTENER_URL),
    os.environ.get("QREDI_SHORTENER_TOKEN"),
)

SECTION_ID_PATTERN = re.compile(r"^[A-Za-z0-9_-]{1,64}$")


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _normalized_strategy(values) -> str:
    name = (values.get("strategy") or DEFAULT_STRATEGY).lower()
    return name if name in STRATEGIES else DEFAULT_STRATEGY


def _section_id(form) -> str:
    """The submitted section id, or a fresh one when absent or malformed."""
    section_id = form.get("section_id", "").strip()
    return section_id if SECTION_ID_PATTERN.match(section_id) else uuid4().hex


def _public_base_url() -> str:
    return os.environ.get("QREDI_PUBLIC_URL") or request.host_url


def _credit_view(message: str, raw_response: dict, strategy: str, saved_result=None) -> dict:
    """Result of one credit for display. Calculation errors stay local to it.

    ``saved_result`` is reused when it was computed with ``strategy``.
    """
    view = {"message": message, "terms": raw_response, "result": None, "error": None}
    if saved_result and saved_result.get("strategy") == strategy:
        view["result"] = saved_result
        return view
    try:
        view["result"] = result_to_dict(simulate(raw_response, strategy))
    except SimulatorError as exc:
        view["error"] = str(exc)
    return view


def _sections_for_view(user_token: str, strategy: str) -> list[dict]:
    sections = []
    for section in section_store.list_sections(user_token):
        view = _credit_view(
            section["original_message"], section["raw_response"], strategy, section["result"]
        )
        view["id"] = section["id"]
        sections.append(view)
    return sections


def _charts(views: list[dict], key) -> dict:
    return {key(i, v): v["result"]["chart"] for i, v in enumerate(views) if v["result"]}


def _run_section(user_token: str, form, strategy: str):
    """Send a description to the extraction service and store the simulated section.

    Returns the follow-up question when the description was incomplete.
    """
    message = form.get("message", "").strip()
    reply = extraction_client.extract(message)
    if not reply.complete:
        return reply.follow_up
    # Only replies that can be simulated are stored.
    result = result_to_dict(simulate(reply.terms, strategy))
    section_store.save_section(user_token, _section_id(form), message, reply.terms, result)
    return None


def _render_index(user_token: str, strategy: str, **context):
    sections = _sections_for_view(user_token, strategy)
    context.setdefault("error", None)
    context.setdefault("follow_up", None)
    context.setdefault("share_url", None)
    context.setdefault("last_message", "")
    return render_template(
        "index.html",
        sections=sections,
        strategy=strategy,
        strategies=sorted(STRATEGIES),
        charts=_charts(sections, lambda i, v: v["id"]),
        asset_version=app.config["ASSET_VERSION"],
        **context,
    )


@app.route("/", methods=["GET", "POST"])
def index():
    error = None
    follow_up = None
    last_message = ""
    user_token = _ensure_user_token()
    strategy = _normalized_strategy(request.values)

    if request.method == "POST":
        last_message = request.form.get("message", "")
        try:
            follow_up = _run_section(user_token, request.form, strategy)
        except SimulatorError as exc:
            app.logger.warning("Simulation failed: %s", exc)
            error = str(exc)

    return _render_index(
        user_token,
        strategy,
        error=error,
        follow_up=follow_up,
        last_message=last_message if (error or follow_up) else "",
    )


@app.post("/sections/remove")
def remove_section():
    section_id = request.form.get("section_id")
    user_token = session.get("user_token")
    section_store.remove_section(user_token, section_id)
    return redirect(url_for("index"))


@app.post("/sections/clear")
def clear_sections():
    user_token = session.get("user_token")
    section_store.clear_sections(user_token)
    return redirect(url_for("index"))


@app.post("/share")
def share():
    user_token = _ensure_user_token()
    strategy = _normalized_strategy(request.form)
    try:
        long_url = build_share_url(_public_base_url(), section_store.shared_records(user_token), SHARE_PATH)
    except SimulatorError as exc:
        return _render_index(user_token, strategy, error=str(exc))
    return _render_index(user_token, strategy, share_url=link_shortener.shorten(long_url))


@app.get(SHARE_PATH)
def shared():
    strategy = _normalized_strategy(request.args)
    try:
        records = decode_share_payload(request.args.get("data"))
    except SimulatorError as exc:
        app.logger.info("Rejected share link: %s", exc)
        return render_template("compartido.html", credits=[], error=str(exc), charts={}), 400
    credits = [
        _credit_view(r.original_message, r.raw_api_response, strategy) for r in records
    ]
    return render_template(
        "compartido.html",
        credits=credits,
        error=None,
        charts=_charts(credits, lambda i, v: str(i)),
    )


@app.post("/api/simulate")
def api_simulate():
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        return jsonify({"error": "Expected a JSON object"}), 400
    strategy = payload.pop("strategy", None) or DEFAULT_STRATEGY
    try:
        result = simulate(payload, strategy)
    except SimulatorError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify(result_to_dict(result))


if __name__ == "__main__":
    print("Starting Qredi simulator web app...")
    app.run(host="0.0.0.0", port=8710, debug=True)
