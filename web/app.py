"""
Keysplit HTTP API.

JSON endpoints backed by keysplit.manager. Shares travel in their portable
dict form; secrets travel as UTF-8 text.
"""

import sys
from pathlib import Path

from aiohttp import web

# Ensure keysplit is importable
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from keysplit import manager
from keysplit.config import Config, configure_logging
from keysplit.errors import ShareError


# ---------------------------------------------------------------------------
# API handlers
# ---------------------------------------------------------------------------

async def api_split(request: web.Request) -> web.Response:
    """
    POST /api/split
    Body JSON: { secret: str, n?: int, k?: int }

    Returns: { shares: [share, share, share] }
    """
    data = await _json_body(request)
    if isinstance(data, web.Response):
        return data

    secret = data.get("secret")
    if not isinstance(secret, str) or not secret:
        return _err("Missing secret", 400)

    n, k = data.get("n", 3), data.get("k", 2)
    if any(isinstance(v, bool) or not isinstance(v, int) for v in (n, k)):
        return _err("n and k must be integers", 400)

    try:
        shares = manager.split_key(secret, total_shares=n, threshold=k)
    except ShareError as exc:
        return _share_err(exc)

    return web.json_response({"ok": True, "shares": shares})


async def api_combine(request: web.Request) -> web.Response:
    """
    POST /api/combine
    Body JSON: { shares: [share, ...] }

    Returns: { secret: str }
    """
    data = await _json_body(request)
    if isinstance(data, web.Response):
        return data

    try:
        secret = manager.combine_shares(data.get("shares", []))
    except ShareError as exc:
        return _share_err(exc)

    return web.json_response({"ok": True, "secret": secret})


async def api_derive(request: web.Request) -> web.Response:
    """
    POST /api/derive
    Body JSON: { shares: [share, share] }

    Returns: { share: share }
    """
    data = await _json_body(request)
    if isinstance(data, web.Response):
        return data

    shares = data.get("shares", [])
    if not isinstance(shares, list) or len(shares) != 2:
        return _err("Exactly two shares are required", 400, kind="InsufficientSharesError")

    try:
        share = manager.generate_new_share_from_two(*shares)
    except ShareError as exc:
        return _share_err(exc)

    return web.json_response({"ok": True, "share": share})


async def api_verify(request: web.Request) -> web.Response:
    """
    POST /api/verify
    Body JSON: { shares: [share, ...] }

    Returns verification result dict.
    """
    data = await _json_body(request)
    if isinstance(data, web.Response):
        return data

    shares = data.get("shares", [])
    if not isinstance(shares, list) or not shares:
        return _err("No shares provided", 400)

    result = manager.verify_shares(shares)
    result["ok"] = True
    return web.json_response(result)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

async def _json_body(request: web.Request):
    try:
        data = await request.json()
    except ValueError:
        return _err("Invalid JSON body", 400)
    if not isinstance(data, dict):
        return _err("JSON body must be an object", 400)
    return data


def _err(msg: str, status: int = 400, kind: str = None) -> web.Response:
    body = {"ok": False, "error": msg}
    if kind:
        body["kind"] = kind
    return web.json_response(body, status=status)


def _share_err(exc: ShareError) -> web.Response:
    return _err(str(exc), 400, kind=type(exc).__name__)


# ---------------------------------------------------------------------------
# App factory
# ---------------------------------------------------------------------------

def create_app(config: Config = None) -> web.Application:
    config = config or Config.from_env()
    app = web.Application(client_max_size=config.max_body)

    app.router.add_post("/api/split", api_split)
    app.router.add_post("/api/combine", api_combine)
    app.router.add_post("/api/derive", api_derive)
    app.router.add_post("/api/verify", api_verify)

    return app


if __name__ == "__main__":
    config = Config.from_env()
    configure_logging(config.log_level)
    print(f"Keysplit API — http://{config.host}:{config.port}")
    web.run_app(create_app(config), host=config.host, port=config.port)
