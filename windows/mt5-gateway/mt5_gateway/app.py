"""Local bridge between the MetaTrader terminal and the signal hub.

The EA's WebRequest calls are short-lived, so payloads are acknowledged
immediately and relayed to the hub by the worker.
"""
import logging
import os
import time

import requests
from flask import Flask, request, jsonify
from waitress import serve

from .queue import enqueue_forward

logger = logging.getLogger(__name__)

app = Flask(__name__)

def _json_body():
    body = request.get_json(force=True, silent=True)
    return body if isinstance(body, dict) else None

@app.post("/v1/trades")
def trades():
    body = _json_body()
    if body is None:
        return jsonify({"ok": False, "message": "JSON object expected"}), 400
    return jsonify({"ok": True, "job_id": enqueue_forward("/api/webhook/trade", body), "ts": time.time()}), 202

@app.post("/v1/accounts")
def accounts():
    body = _json_body()
    if body is None:
        return jsonify({"ok": False, "message": "JSON object expected"}), 400
    return jsonify({"ok": True, "job_id": enqueue_forward("/api/webhook/account", body), "ts": time.time()}), 202

@app.get("/v1/signals/pending")
def pending_signals():
    url = os.getenv("HUB_URL", "").rstrip("/")
    if not url:
        return jsonify({"success": False, "signals": [], "message": "HUB_URL not set"}), 503
    try:
        r = requests.get(url + "/api/signals/pending", timeout=10)
        r.raise_for_status()
        return jsonify(r.json())
    except requests.RequestException as e:
        logger.warning("pending signals unavailable: %s", e)
        return jsonify({"success": False, "signals": [], "message": str(e)}), 502

@app.get("/health")
def health():
    return jsonify({"status": "OK", "ts": time.time()})

if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
    port = int(os.getenv("PORT", "8090"))
    serve(app, host="0.0.0.0", port=port)
