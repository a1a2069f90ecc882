#!/usr/bin/env python3
"""
Simple mock ingestion endpoint for local runs and integration testing.

Endpoints:
- POST /events  -> accepts JSON payloads, increments counters
- GET  /health  -> basic health
- GET  /stats   -> returns counts and the last payload
- POST /reset   -> clears counters

Env:
- PORT (default 8080)
- FAIL_EVERY (default 0): every Nth POST /events answers 503
"""

import os
import threading

from flask import Flask, jsonify, request


class Stats:
    def __init__(self, fail_every=0):
        self.lock = threading.Lock()
        self.fail_every = fail_every
        self.received = 0
        self.count = 0
        self.rejected = 0
        self.last = None

    def accept(self, payload):
        """Record one POST. Returns False if it should be answered as failed."""
        with self.lock:
            self.received += 1
            if self.fail_every and self.received % self.fail_every == 0:
                self.rejected += 1
                return False
            self.count += 1
            self.last = payload
            return True

    def snapshot(self):
        with self.lock:
            return {
                "count": self.count,
                "rejected": self.rejected,
                "received": self.received,
                "last": self.last,
            }

    def reset(self):
        with self.lock:
            self.received = 0
            self.count = 0
            self.rejected = 0
            self.last = None


def create_app(fail_every=None):
    app = Flask(__name__)
    if fail_every is None:
        fail_every = int(os.environ.get('FAIL_EVERY', '0'))
    stats = Stats(fail_every=fail_every)
    app.config['STATS'] = stats

    @app.route('/health', methods=['GET'])
    def health():
        return jsonify({"status": "healthy", "service": "mock-ingest"})

    @app.route('/events', methods=['POST'])
    def events():
        payload = request.get_json(silent=True)
        if payload is None:
            return jsonify({"ok": False, "error": "invalid JSON"}), 400
        if not stats.accept(payload):
            return jsonify({"ok": False, "error": "injected failure"}), 503
        return jsonify({"ok": True}), 200

    @app.route('/stats', methods=['GET'])
    def get_stats():
        return jsonify(stats.snapshot())

    @app.route('/reset', methods=['POST'])
    def reset():
        stats.reset()
        return jsonify({"ok": True})

    return app


if __name__ == '__main__':
    port = int(os.environ.get('PORT', '8080'))
    create_app().run(host='0.0.0.0', port=port, threaded=True)
