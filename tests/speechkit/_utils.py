from __future__ import annotations

import asyncio
import json
import os
import stat
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Optional
from urllib.parse import parse_qsl

from aiohttp import web
from aiohttp.test_utils import TestServer
from multidict import CIMultiDict

from yandexcloud.speechkit import AsyncClient
from yandexcloud.speechkit import OAuthTokenAuth

Handler = Callable[[web.Request], Awaitable[web.StreamResponse]]


@dataclass
class RecordedRequest:
    """A request received by the fake API."""

    path: str
    query: dict[str, str]
    headers: CIMultiDict[str]
    body: bytes

    def form(self) -> dict[str, str]:
        return dict(parse_qsl(self.body.decode()))


@dataclass
class FakeApi:
    """Fake IAM, STT and TTS endpoints served from a local aiohttp server."""

    server: TestServer
    requests: list[RecordedRequest] = field(default_factory=list)

    def url(self, path: str) -> str:
        return str(self.server.make_url(path))

    def calls(self, path: str) -> list[RecordedRequest]:
        return [r for r in self.requests if r.path == path]

    @property
    def iam_url(self) -> str:
        return self.url("/iam/v1/tokens")

    @property
    def stt_url(self) -> str:
        return self.url("/speech/v1/stt:recognize")

    @property
    def tts_url(self) -> str:
        return self.url("/speech/v1/tts:synthesize")


class TokenIssuer:
    """IAM handler issuing t1.token-1, t1.token-2, ... on each exchange."""

    def __init__(self, delay: float = 0.0) -> None:
        self.issued = 0
        self.delay = delay

    async def __call__(self, request: web.Request) -> web.Response:
        if self.delay:
            await asyncio.sleep(self.delay)
        self.issued += 1
        return web.json_response({"iamToken": f"t1.token-{self.issued}", "expiresAt": "2030-01-01T00:00:00Z"})


async def recognized(request: web.Request) -> web.Response:
    return web.json_response({"result": "привет мир"})


async def synthesized(request: web.Request) -> web.Response:
    return web.Response(body=b"\x01\x02" * 100, content_type="audio/x-pcm")


def json_reply(data: Any, status: int = 200) -> Handler:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(text=json.dumps(data), status=status, content_type="application/json")

    return handler


def reply(body: bytes = b"", status: int = 200, content_type: str = "application/octet-stream") -> Handler:
    async def handler(request: web.Request) -> web.Response:
        return web.Response(body=body, status=status, content_type=content_type)

    return handler


@asynccontextmanager
async def fake_api(
    iam: Optional[Handler] = None,
    stt: Optional[Handler] = None,
    tts: Optional[Handler] = None,
    extra: Optional[dict[str, Handler]] = None,
) -> AsyncIterator[FakeApi]:
    """Start a fake API server; handlers default to successful replies."""

    app = web.Application()
    api = FakeApi(server=TestServer(app))

    def recording(handler: Handler) -> Handler:
        async def wrapper(request: web.Request) -> web.StreamResponse:
            body = await request.read()
            api.requests.append(
                RecordedRequest(
                    path=request.path,
                    query=dict(request.query),
                    headers=request.headers.copy(),
                    body=body,
                )
            )
            return await handler(request)

        return wrapper

    app.router.add_post("/iam/v1/tokens", recording(iam or TokenIssuer()))
    app.router.add_post("/speech/v1/stt:recognize", recording(stt or recognized))
    app.router.add_post("/speech/v1/tts:synthesize", recording(tts or synthesized))
    for path, handler in (extra or {}).items():
        app.router.add_post(path, recording(handler))

    await api.server.start_server()
    try:
        yield api
    finally:
        await api.server.close()


def get_client(api: FakeApi, clock: Optional[Callable[[], float]] = None, **kwargs: Any) -> AsyncClient:
    """Get a client talking to the fake API."""

    auth_kwargs: dict[str, Any] = {"iam_url": api.iam_url}
    if clock is not None:
        auth_kwargs["clock"] = clock
    if "token_lifetime" in kwargs:
        auth_kwargs["token_lifetime"] = kwargs.pop("token_lifetime")

    auth = kwargs.pop("auth", None) or OAuthTokenAuth("oauth-token", **auth_kwargs)
    return AsyncClient(auth, folder_id="b1g-folder", stt_url=api.stt_url, tts_url=api.tts_url, **kwargs)


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


def write_encoder(path: str, body: str) -> str:
    """Write an executable shell script acting as the encoder."""

    with open(path, "w", encoding="utf-8") as f:
        f.write("#!/bin/sh\n")
        f.write(body)
        f.write("\n")
    os.chmod(path, os.stat(path).st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return path
