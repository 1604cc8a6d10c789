"""API client for the Open Delivery Gear Delivery Service."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

import httpx
from pydantic import TypeAdapter, ValidationError

from inventory_odg.api.types import (
    ArtefactMetadata,
    ComponentArtefactID,
    RuntimeArtefactResultItem,
)

logger = logging.getLogger(__name__)

_ARTEFACT_METADATA_LIST = TypeAdapter(list[ArtefactMetadata])
_RUNTIME_ARTEFACT_LIST = TypeAdapter(list[RuntimeArtefactResultItem])

_MAX_ERROR_BODY_CHARS = 2_000


class APIError(Exception):
    """Unexpected response (or no response at all) from the remote API.

    ``status_code`` is ``None`` when the request never produced a response,
    e.g. on connect or read timeouts.
    """

    def __init__(self, message: str, status_code: int | None = None, body: str = "") -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body

    def __str__(self) -> str:
        base = super().__str__()
        if self.status_code is None:
            return base
        return f"{base} (status {self.status_code})"


def _dump_entries(entries: Iterable[ArtefactMetadata]) -> list[dict[str, Any]]:
    return [entry.model_dump(mode="json", exclude_none=True) for entry in entries]


def _dump_ids(ids: Iterable[ComponentArtefactID]) -> list[dict[str, Any]]:
    return [item.model_dump(mode="json") for item in ids]


def _label_params(labels: Mapping[str, str]) -> list[tuple[str, str]]:
    return [("label", f"{key}:{value}") for key, value in sorted(labels.items())]


class OdgClient:
    """Synchronous client for the Delivery Service REST API.

    The client does not retry; callers decide what to do with an
    :class:`APIError`.
    """

    def __init__(
        self,
        endpoint: str,
        *,
        user_agent: str | None = None,
        timeout: float = 30.0,
        github_url: str | None = None,
        github_token: str | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        if not endpoint:
            raise ValueError("odg: no api endpoint specified")
        headers = {"Accept": "application/json"}
        if user_agent:
            headers["User-Agent"] = user_agent
        self._endpoint = endpoint.rstrip("/")
        self._github_url = github_url
        self._github_token = github_token
        self._http = httpx.Client(
            base_url=self._endpoint,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    @property
    def endpoint(self) -> str:
        return self._endpoint

    def __enter__(self) -> "OdgClient":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._http.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        expected: tuple[int, ...],
        params: Any = None,
        json: Any = None,
    ) -> httpx.Response:
        try:
            response = self._http.request(method, path, params=params, json=json)
        except httpx.HTTPError as exc:
            raise APIError(f"{method} {path} failed: {exc}") from exc

        if response.status_code not in expected:
            body = response.text[:_MAX_ERROR_BODY_CHARS]
            raise APIError(
                f"{method} {path} returned unexpected status",
                status_code=response.status_code,
                body=body,
            )
        return response

    @staticmethod
    def _decode(response: httpx.Response, adapter: TypeAdapter) -> Any:
        try:
            return adapter.validate_python(response.json())
        except (ValueError, ValidationError) as exc:
            raise APIError(
                f"invalid response body from {response.request.url.path}: {exc}",
                status_code=response.status_code,
                body=response.text[:_MAX_ERROR_BODY_CHARS],
            ) from exc

    def authenticate(self) -> None:
        """Authenticate with a Github access token.

        The Delivery Service answers with a session cookie, which the
        underlying HTTP client keeps for all subsequent requests.
        """
        if not self._github_url or not self._github_token:
            raise ValueError("odg: github authentication requires api url and access token")
        self._request(
            "GET",
            "/auth",
            expected=(200,),
            params={"api_url": self._github_url, "access_token": self._github_token},
        )
        logger.info("Authenticated against %s", self._endpoint)

    def logout(self) -> None:
        self._request("GET", "/auth/logout", expected=(200, 204))
        self._http.cookies.clear()

    def query_artefact_metadata(
        self, datatype: str, *ids: ComponentArtefactID
    ) -> list[ArtefactMetadata]:
        """Query artefact metadata entries of the given datatype."""
        response = self._request(
            "POST",
            "/artefacts/metadata/query",
            expected=(200,),
            params={"type": datatype},
            json={"entries": _dump_ids(ids)},
        )
        return self._decode(response, _ARTEFACT_METADATA_LIST)

    def delete_artefact_metadata(self, *entries: ArtefactMetadata) -> None:
        if not entries:
            return
        self._request(
            "DELETE",
            "/artefacts/metadata",
            expected=(200, 204),
            json={"entries": _dump_entries(entries)},
        )

    def submit_artefact_metadata(self, *entries: ArtefactMetadata) -> None:
        if not entries:
            return
        self._request(
            "PUT",
            "/artefacts/metadata",
            expected=(200, 201),
            json={"entries": _dump_entries(entries)},
        )

    def query_runtime_artefacts(
        self, labels: Mapping[str, str]
    ) -> list[RuntimeArtefactResultItem]:
        response = self._request(
            "GET",
            "/service-extensions/runtime-artefacts",
            expected=(200,),
            params=_label_params(labels),
        )
        return self._decode(response, _RUNTIME_ARTEFACT_LIST)

    def delete_runtime_artefacts(self, *names: str) -> None:
        if not names:
            return
        self._request(
            "DELETE",
            "/service-extensions/runtime-artefacts",
            expected=(200, 204),
            params=[("name", name) for name in names],
        )

    def submit_runtime_artefacts(
        self, labels: Mapping[str, str], *ids: ComponentArtefactID
    ) -> None:
        if not ids:
            return
        self._request(
            "PUT",
            "/service-extensions/runtime-artefacts",
            expected=(200, 201),
            json={"artefacts": _dump_ids(ids), "labels": dict(labels)},
        )
