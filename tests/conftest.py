"""Shared fixtures for docrag tests."""

from __future__ import annotations

import io
import json
import zipfile
from typing import Callable, Dict, List

import httpx
import pytest

from docrag.embedding.client import EmbeddingClient, EmbeddingConfig


def make_zip(entries: Dict[str, str | bytes], modes: Dict[str, int] | None = None) -> bytes:
    """Build an in-memory zip archive from name -> content."""
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for name, content in entries.items():
            info = zipfile.ZipInfo(name)
            mode = (modes or {}).get(name)
            if name.endswith("/"):
                info.external_attr = (0o40755 << 16) | 0x10
            elif mode is not None:
                info.external_attr = (0o100000 | mode) << 16
            archive.writestr(info, content)
    return buffer.getvalue()


def embedding_handler(
    vectors: Callable[[str], List[float]], calls: List[List[str]] | None = None
) -> Callable[[httpx.Request], httpx.Response]:
    """MockTransport handler answering /embeddings with one vector per input."""

    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        if calls is not None:
            calls.append(body["input"])
        data = [
            {"object": "embedding", "index": idx, "embedding": vectors(text)}
            for idx, text in enumerate(body["input"])
        ]
        return httpx.Response(
            200,
            json={"data": data, "usage": {"prompt_tokens": 3, "total_tokens": 3}},
        )

    return handler


@pytest.fixture
def make_embedder() -> Callable[..., EmbeddingClient]:
    def factory(handler: Callable[[httpx.Request], httpx.Response], **config) -> EmbeddingClient:
        http = httpx.Client(transport=httpx.MockTransport(handler))
        return EmbeddingClient(EmbeddingConfig(api_key="sk-test", batch_delay=0, **config), http_client=http)

    return factory
