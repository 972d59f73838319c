"""httpx transport bound to a run's cookie Session."""
import json
import logging

import httpx

from bonus.models.session import Session

logger = logging.getLogger(__name__)

APP_HEADERS = {
    "User-Agent": "Bahamut/5.0 CFNetwork/1399 Darwin/22.1.0",
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "zh-TW,zh;q=0.9",
    "Content-Type": "application/x-www-form-urlencoded",
}

# The anime sub-service rejects the main app identity.
ANIME_HEADERS = {
    "User-Agent": "Anime/2.13.9 (tw.com.gamer.anime;build:437;iOS 14.5.0) Alamofire/5.4.1",
    "Accept": "application/json, text/javascript, */*; q=0.01",
    "Accept-Language": "zh-TW,zh;q=0.9,en;q=0.8",
    "Content-Type": "application/x-www-form-urlencoded",
    "Referer": "https://ani.gamer.com.tw/",
    "X-Requested-With": "XMLHttpRequest",
}


def content_type(resp: httpx.Response) -> str:
    return resp.headers.get("content-type", "").lower()


def is_json(resp: httpx.Response) -> bool:
    return "application/json" in content_type(resp)


def is_html(resp: httpx.Response) -> bool:
    return "text/html" in content_type(resp)


def parse_json(resp: httpx.Response) -> dict:
    """Decode a JSON object body. Raises ValueError on anything else."""
    try:
        data = json.loads(resp.text)
    except json.JSONDecodeError as exc:
        raise ValueError(f"non-JSON response from {resp.request.url.host}") from exc
    if not isinstance(data, dict):
        raise ValueError(f"unexpected JSON shape from {resp.request.url.host}")
    return data


class PortalClient:
    """
    Sends the run's Session as an explicit Cookie header and absorbs every
    Set-Cookie back into it, across all *.gamer.com.tw hosts.
    """

    def __init__(self, http: httpx.AsyncClient, session: Session | None = None):
        self.http = http
        self.session = session if session is not None else Session()

    async def request(
        self,
        method: str,
        url: str,
        *,
        headers: dict | None = None,
        profile: dict = APP_HEADERS,
        data: dict | None = None,
        cookie: str | None = None,
        follow_redirects: bool = True,
    ) -> httpx.Response:
        merged = dict(profile)
        if headers:
            merged.update(headers)
        cookie_header = cookie if cookie is not None else self.session.serialize()
        if cookie_header:
            merged["Cookie"] = cookie_header

        resp = await self.http.request(
            method,
            url,
            headers=merged,
            data=data,
            follow_redirects=follow_redirects,
        )
        # httpx keeps its own jar; the Session is the only one we trust.
        self.http.cookies.clear()

        # Redirect hops can set cookies too.
        set_cookies = [c for hop in (*resp.history, resp) for c in hop.headers.get_list("set-cookie")]
        if set_cookies:
            self.session.absorb(set_cookies)
        logger.debug("%s %s -> %d (%d cookies)", method, url, resp.status_code, len(set_cookies))
        return resp

    async def get(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("GET", url, **kwargs)

    async def post(self, url: str, **kwargs) -> httpx.Response:
        return await self.request("POST", url, **kwargs)
