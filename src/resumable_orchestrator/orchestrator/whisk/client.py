"""Task platform REST client.

Talks to the OpenWhisk REST API with `requests`:

- `GET  {api_host}/api/v1/namespaces/{ns}/actions` lists deployed actions
- `POST {api_host}/api/v1/namespaces/{ns}/actions/{name}?blocking=true&result=true`
  invokes an action synchronously and returns its result object

Authentication is HTTP basic auth with the `uuid:key` pair the platform hands
out.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

import requests

logger = logging.getLogger(__name__)

_LIST_PAGE_SIZE = 200


class WhiskError(RuntimeError):
    """A task platform call failed (transport, HTTP status or action error)."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True, slots=True)
class ActionDeclaration:
    """Minimal metadata of a deployed action."""

    name: str
    namespace: str
    version: str | None = None


class WhiskClient:
    """Small wrapper around the task platform's REST API for the calls we need."""

    def __init__(
        self,
        *,
        api_host: str,
        auth: str,
        namespace: str = "_",
        timeout_seconds: float = 60.0,
        session: requests.Session | None = None,
    ) -> None:
        if not api_host:
            raise ValueError("Task platform API host is required")

        host = api_host.rstrip("/")
        if not host.startswith(("http://", "https://")):
            host = f"https://{host}"
        self._base_url = f"{host}/api/v1/namespaces/{quote(namespace or '_', safe='')}"
        self._timeout = timeout_seconds
        self._session = session or requests.Session()
        self._session.headers.update(
            {
                "Accept": "application/json",
                "User-Agent": "resumable-orchestrator",
            }
        )
        if auth:
            user, _, key = auth.partition(":")
            self._session.auth = (user, key)

    @property
    def base_url(self) -> str:
        return self._base_url

    def _action_url(self, name: str) -> str:
        if not name.strip():
            raise ValueError("action name is required")
        # Package-qualified names ("pkg/action") keep their slash.
        return f"{self._base_url}/actions/{quote(name, safe='/')}"

    def list_actions(self) -> list[ActionDeclaration]:
        """Return every action deployed in the namespace (all pages)."""

        actions: list[ActionDeclaration] = []
        skip = 0
        while True:
            try:
                resp = self._session.get(
                    f"{self._base_url}/actions",
                    params={"limit": _LIST_PAGE_SIZE, "skip": skip},
                    timeout=self._timeout,
                )
                resp.raise_for_status()
            except requests.RequestException as e:
                raise WhiskError(
                    f"Listing actions failed: {e}",
                    status_code=getattr(e.response, "status_code", None),
                ) from e

            page: Any = resp.json()
            if not isinstance(page, list):
                raise WhiskError("Unexpected action listing response: expected a list")
            for decl in page:
                if not isinstance(decl, dict) or not isinstance(decl.get("name"), str):
                    continue
                actions.append(
                    ActionDeclaration(
                        name=decl["name"],
                        namespace=str(decl.get("namespace", "")),
                        version=decl.get("version"),
                    )
                )
            if len(page) < _LIST_PAGE_SIZE:
                return actions
            skip += len(page)

    def invoke(self, name: str, params: dict[str, Any]) -> dict[str, Any]:
        """Invoke an action and block until it returns its result.

        Raises:
            WhiskError if the call fails or the action reports an error.
        """

        try:
            resp = self._session.post(
                self._action_url(name),
                params={"blocking": "true", "result": "true"},
                json=params,
                timeout=self._timeout,
            )
        except requests.RequestException as e:
            raise WhiskError(f"Invoking {name} failed: {e}") from e

        try:
            body: Any = resp.json()
        except ValueError:
            body = None

        if resp.status_code >= 400:
            detail = body.get("error") if isinstance(body, dict) else None
            raise WhiskError(
                f"Invoking {name} returned HTTP {resp.status_code}: {detail or resp.text}",
                status_code=resp.status_code,
            )
        if not isinstance(body, dict):
            raise WhiskError(f"Action {name} returned a non-object result")
        if "error" in body:
            raise WhiskError(f"Action {name} reported an error: {body['error']}")
        return body

    def close(self) -> None:
        self._session.close()
