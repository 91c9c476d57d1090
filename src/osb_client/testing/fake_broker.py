from __future__ import annotations

import asyncio
import json
import threading
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple

from aiohttp import web


@dataclass(frozen=True)
class RecordedRequest:
    method: str
    path: str
    query: Dict[str, str]
    headers: Mapping[str, str]
    body: bytes

    def json(self) -> Any:
        return json.loads(self.body.decode("utf-8")) if self.body else None


@dataclass(frozen=True)
class CannedResponse:
    status: int
    # JSON-serializable object, raw bytes, or None for an empty body.
    body: Any = None


@dataclass
class FakeBroker:
    """
    Local broker double for tests and dev.

    Replies with canned responses keyed by (method, path); the last canned
    response for a route is repeated once earlier ones are used up. Unknown
    routes get 404. Every request is recorded.
    """

    host: str = "127.0.0.1"
    base_url: str = ""
    requests: List[RecordedRequest] = field(default_factory=list)
    _routes: Dict[Tuple[str, str], List[CannedResponse]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock)
    _loop: Optional[asyncio.AbstractEventLoop] = None
    _runner: Optional[web.AppRunner] = None
    _thread: Optional[threading.Thread] = None

    def respond(self, method: str, path: str, status: int, body: Any = None) -> None:
        with self._lock:
            self._routes.setdefault((method.upper(), path), []).append(CannedResponse(status=status, body=body))

    def recorded(self, method: Optional[str] = None) -> List[RecordedRequest]:
        with self._lock:
            return [r for r in self.requests if method is None or r.method == method.upper()]

    def _next(self, method: str, path: str) -> Optional[CannedResponse]:
        with self._lock:
            queue = self._routes.get((method, path))
            if not queue:
                return None
            return queue.pop(0) if len(queue) > 1 else queue[0]

    async def _handle(self, req: web.Request) -> web.StreamResponse:
        raw = await req.read()
        with self._lock:
            self.requests.append(
                RecordedRequest(
                    method=req.method,
                    path=req.path,
                    query=dict(req.query),
                    headers=req.headers.copy(),
                    body=raw,
                )
            )
        canned = self._next(req.method, req.path)
        if canned is None:
            return web.json_response({"error": "NotFound", "description": f"no canned response for {req.method} {req.path}"}, status=404)
        if canned.body is None:
            return web.Response(status=canned.status)
        if isinstance(canned.body, (bytes, bytearray)):
            return web.Response(status=canned.status, body=bytes(canned.body), content_type="application/json")
        return web.json_response(canned.body, status=canned.status)

    def start(self) -> "FakeBroker":
        loop = asyncio.new_event_loop()
        ready = threading.Event()

        def run() -> None:
            asyncio.set_event_loop(loop)

            async def _run() -> None:
                app = web.Application()
                app.router.add_route("*", "/{tail:.*}", self._handle)
                runner = web.AppRunner(app)
                await runner.setup()
                site = web.TCPSite(runner, self.host, 0)
                await site.start()
                port = list(site._server.sockets)[0].getsockname()[1]  # type: ignore[union-attr]
                self._runner = runner
                self.base_url = f"http://{self.host}:{port}"

            loop.run_until_complete(_run())
            ready.set()
            loop.run_forever()

        t = threading.Thread(target=run, daemon=True)
        t.start()
        if not ready.wait(timeout=10):
            raise RuntimeError("fake broker failed to start")
        self._loop = loop
        self._thread = t
        return self

    def stop(self) -> None:
        if self._loop is None or self._runner is None:
            return
        fut = asyncio.run_coroutine_threadsafe(self._runner.cleanup(), self._loop)
        fut.result(timeout=5)
        self._loop.call_soon_threadsafe(self._loop.stop)
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._loop = None
        self._runner = None

    def __enter__(self) -> "FakeBroker":
        return self.start()

    def __exit__(self, *_exc: object) -> None:
        self.stop()
