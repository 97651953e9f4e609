"""Client for the Logseq HTTP API server."""

import logging
import os
from typing import Any

import requests

from qquery.config import API_TOKEN_FILES, API_URL

# Seconds to wait for the desktop app before giving up on a call.
REQUEST_TIMEOUT = 10.0


class LogseqApi:
    """Calls plugin API methods (logseq.Editor.*, logseq.DB.*) over HTTP."""

    def __init__(self, *, url: str = API_URL, token: str | None = None) -> None:
        self.url = url
        self.sess = requests.Session()
        self.logger = logging.getLogger("api")

        token_name: str | None = "argument" if token else None
        if token is None and os.environ.get("QQUERY_API_TOKEN"):
            token = os.environ["QQUERY_API_TOKEN"]
            token_name = "QQUERY_API_TOKEN"
        if token is None:
            for token_path in API_TOKEN_FILES:
                try:
                    token = token_path.read_text(encoding="utf-8").strip()
                    token_name = str(token_path)
                    break
                except FileNotFoundError:
                    pass
            else:
                msg = f"Cannot find Logseq API token file, was looking at {API_TOKEN_FILES!r}"
                raise RuntimeError(msg)

        self.api_token = token
        self.sess.headers["Authorization"] = f"Bearer {self.api_token}"
        self.logger.debug(f"API ready: {self.url!r}, token from {token_name!r}")

    def call(self, method: str, args: list[Any]) -> Any:
        """Invoke a plugin API method, return its decoded JSON result."""
        self.logger.debug(f"Making request: {method!r} {repr(args)[:64]}")

        r = self.sess.post(
            self.url,
            json={"method": method, "args": args},
            timeout=REQUEST_TIMEOUT,
        )
        r.raise_for_status()
        if not r.content:
            return None
        rv = r.json()
        if isinstance(rv, dict) and rv.get("error"):
            msg = f"API call failed: ({method!r}, {args!r}) -> {rv['error']!r}"
            raise RuntimeError(msg)
        return rv
