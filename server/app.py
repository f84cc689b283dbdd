from __future__ import annotations

import argparse
import json
import logging
import sys
from dataclasses import asdict
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path
from typing import Any

# Allow running from repo root without installing.
REPO_ROOT = Path(__file__).resolve().parents[1]
SRC_DIR = REPO_ROOT / "src"
sys.path.insert(0, str(SRC_DIR))

from lease_vs_buy.export.snapshot import build_snapshot  # noqa: E402
from lease_vs_buy.npv.engine import calculate  # noqa: E402
from lease_vs_buy.scenario.defaults import default_scenario, default_scenario_dict  # noqa: E402
from lease_vs_buy.scenario.inputs import ScenarioInputs, ScenarioValidationError, validate_scenario  # noqa: E402
from lease_vs_buy.sensitivity.analysis import (  # noqa: E402
    DEFAULT_BREAK_EVEN_RANGE,
    MeshParams,
    SweepRange,
    find_break_even,
    generate_mesh,
)

logger = logging.getLogger("lease_vs_buy.server")


class BadRequest(ValueError):
    pass


def _scenario_from(body: dict[str, Any]) -> ScenarioInputs:
    raw = body.get("scenario")
    if raw is None:
        return default_scenario()
    return validate_scenario(raw)


def _range_from(raw: Any, fallback: SweepRange) -> SweepRange:
    if raw is None:
        return fallback
    if not isinstance(raw, dict):
        raise BadRequest("range must be an object with min, max, step")
    try:
        return SweepRange(
            float(raw.get("min", fallback.min)),
            float(raw.get("max", fallback.max)),
            float(raw.get("step", fallback.step)),
        )
    except (TypeError, ValueError) as e:
        raise BadRequest(f"invalid range: {e}") from e


def handle_calculate(body: dict[str, Any]) -> dict[str, Any]:
    inputs = _scenario_from(body)
    return build_snapshot(inputs, calculate(inputs))


def handle_break_even(body: dict[str, Any]) -> dict[str, Any]:
    inputs = _scenario_from(body)
    res = find_break_even(inputs, _range_from(body.get("search"), DEFAULT_BREAK_EVEN_RANGE))
    return {"break_even": asdict(res.break_even), "curve": [asdict(p) for p in res.curve]}


def handle_mesh(body: dict[str, Any]) -> dict[str, Any]:
    inputs = _scenario_from(body)
    defaults = MeshParams()
    params = MeshParams(
        months=_range_from(body.get("months"), defaults.months),
        km_per_year=_range_from(body.get("kmPerYear"), defaults.km_per_year),
    )
    return {"mesh": [asdict(c) for c in generate_mesh(inputs, params)]}


ROUTES = {
    "/api/calculate": handle_calculate,
    "/api/break-even": handle_break_even,
    "/api/mesh": handle_mesh,
}


class App(BaseHTTPRequestHandler):
    def _send_json(self, status: int, payload: dict[str, Any]) -> None:
        data = json.dumps(payload).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(data)))
        # Lets a separately served UI call the API during local experimentation.
        self.send_header("Access-Control-Allow-Origin", "*")
        self.end_headers()
        self.wfile.write(data)

    def _read_json_body(self) -> Any:
        n = int(self.headers.get("Content-Length", "0") or "0")
        raw = self.rfile.read(n) if n > 0 else b""
        if not raw:
            return {}
        return json.loads(raw.decode("utf-8"))

    def do_OPTIONS(self) -> None:  # noqa: N802
        self.send_response(HTTPStatus.NO_CONTENT)
        self.send_header("Access-Control-Allow-Origin", "*")
        self.send_header("Access-Control-Allow-Methods", "GET, POST, OPTIONS")
        self.send_header("Access-Control-Allow-Headers", "Content-Type")
        self.end_headers()

    def do_GET(self) -> None:  # noqa: N802
        if self.path.rstrip("/") == "/api/defaults":
            return self._send_json(HTTPStatus.OK, default_scenario_dict())
        return self._send_json(HTTPStatus.NOT_FOUND, {"error": "Unknown endpoint"})

    def do_POST(self) -> None:  # noqa: N802
        handler = ROUTES.get(self.path.rstrip("/"))
        if handler is None:
            return self._send_json(HTTPStatus.NOT_FOUND, {"error": "Unknown endpoint"})
        try:
            body = self._read_json_body()
            if not isinstance(body, dict):
                return self._send_json(HTTPStatus.BAD_REQUEST, {"error": "Expected JSON object body"})
            return self._send_json(HTTPStatus.OK, handler(body))
        except json.JSONDecodeError as e:
            return self._send_json(HTTPStatus.BAD_REQUEST, {"error": f"Invalid JSON: {e}"})
        except ScenarioValidationError as e:
            return self._send_json(HTTPStatus.BAD_REQUEST, {"error": "invalid scenario", "reasons": e.reasons})
        except ValueError as e:
            return self._send_json(HTTPStatus.BAD_REQUEST, {"error": str(e)})
        except Exception as e:  # pragma: no cover
            logger.exception("unhandled error on %s", self.path)
            return self._send_json(HTTPStatus.INTERNAL_SERVER_ERROR, {"error": f"{type(e).__name__}: {e}"})

    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.info("%s - %s", self.address_string(), format % args)


def main() -> int:
    ap = argparse.ArgumentParser()
    ap.add_argument("--host", default="127.0.0.1")
    ap.add_argument("--port", type=int, default=8000)
    ap.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    args = ap.parse_args()

    logging.basicConfig(level=getattr(logging, args.log_level), format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    httpd = ThreadingHTTPServer((args.host, args.port), App)
    logger.info("Serving API at http://%s:%d/api/", args.host, args.port)
    httpd.serve_forever()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
