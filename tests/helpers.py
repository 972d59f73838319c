"""Scripted portal transport shared by the test modules."""
import httpx


def json_response(payload, status=200, cookies=()):
    return lambda: httpx.Response(
        status, json=payload, headers=[("set-cookie", c) for c in cookies]
    )


def html_response(body, status=200, cookies=()):
    return lambda: httpx.Response(
        status, html=body, headers=[("set-cookie", c) for c in cookies]
    )


def text_response(body, status=200, content_type="text/plain; charset=utf-8", cookies=()):
    headers = [("content-type", content_type)] + [("set-cookie", c) for c in cookies]
    return lambda: httpx.Response(status, text=body, headers=headers)


class ScriptedPortal:
    """
    Routes (METHOD, scheme://host/path) to response factories.
    A list is consumed in order; its last entry repeats.
    """

    def __init__(self, routes: dict):
        self.routes = {k: list(v) if isinstance(v, list) else [v] for k, v in routes.items()}
        self.requests: list[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, f"{request.url.scheme}://{request.url.host}{request.url.path}")
        if key not in self.routes:
            return httpx.Response(404, text=f"unscripted {key}")
        queue = self.routes[key]
        factory = queue.pop(0) if len(queue) > 1 else queue[0]
        return factory()

    def client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(transport=httpx.MockTransport(self.handler))

    def calls_to(self, method: str, url: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and f"{r.url.scheme}://{r.url.host}{r.url.path}" == url
        ]


class FakeSleep:
    def __init__(self):
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


class RecordingNotifier:
    def __init__(self):
        self.sent: list[tuple[str, str]] = []

    async def send(self, title: str, body: str) -> bool:
        self.sent.append((title, body))
        return True
