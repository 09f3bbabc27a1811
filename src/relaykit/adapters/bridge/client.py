"""Signed JSON client for the SDK bridge.

The data-protection, messaging and account SDKs only ship for JavaScript. A
small bridge process exposes them over HTTP; this module talks to it and maps
every failure onto :class:`CollaboratorError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import getLogger
from typing import TYPE_CHECKING

import httpx
from pydantic import BaseModel, ValidationError as PayloadValidationError

from relaykit.adapters.http_resilience import ResilientClient
from relaykit.domain.errors import Collaborator, CollaboratorError

from .schema import ErrorResponse
from .signing import RequestSigner

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping
    from types import TracebackType

    from relaykit.config.http_resilience import ResilienceConfig
    from relaykit.config.iexec import IExecConfig

log = getLogger(__name__)


def _default_client_factory(config: ResilienceConfig) -> ResilientClient:
    return ResilientClient(config)


@dataclass(slots=True)
class BridgeSession:
    """One open connection to the bridge, shared by the port adapters."""

    config: IExecConfig
    client_factory: Callable[[ResilienceConfig], ResilientClient] = field(
        default=_default_client_factory
    )
    signer: RequestSigner | None = None
    _client: ResilientClient | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.signer is None:
            self.signer = RequestSigner.from_private_key(
                self.config.private_key, chain_id=self.config.chain_id
            )

    @property
    def address(self) -> str:
        assert self.signer is not None
        return self.signer.address

    async def __aenter__(self) -> BridgeSession:
        self._client = self.client_factory(self.config.resilience)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def get[M: BaseModel](
        self,
        path: str,
        model: type[M],
        *,
        collaborator: Collaborator,
        params: Mapping[str, str] | None = None,
    ) -> M:
        return await self._call("GET", path, model, collaborator=collaborator, params=params)

    async def post[M: BaseModel](
        self,
        path: str,
        model: type[M],
        *,
        collaborator: Collaborator,
        body: Mapping[str, object] | None = None,
    ) -> M:
        return await self._call("POST", path, model, collaborator=collaborator, body=body)

    async def _call[M: BaseModel](
        self,
        method: str,
        path: str,
        model: type[M],
        *,
        collaborator: Collaborator,
        params: Mapping[str, str] | None = None,
        body: Mapping[str, object] | None = None,
    ) -> M:
        if self._client is None:
            raise RuntimeError("BridgeSession used outside of 'async with'")
        assert self.signer is not None

        headers = self.signer.headers(method, path)
        try:
            response = await self._client.request(
                method,
                path,
                params=dict(params) if params else None,
                json=dict(body) if body is not None else None,
                headers=headers,
            )
        except httpx.HTTPError as exc:
            raise CollaboratorError(
                f"{method} {path} failed: {exc}", collaborator=collaborator, cause=exc
            ) from exc

        payload = _json_or_none(response)
        if response.is_error:
            raise _error_from_response(response, payload, collaborator=collaborator)

        try:
            return model.model_validate(payload)
        except PayloadValidationError as exc:
            log.error("Unexpected payload from %s %s: %s", method, path, payload)
            raise CollaboratorError(
                f"Unexpected response payload from {path}", collaborator=collaborator, cause=exc
            ) from exc


def _json_or_none(response: httpx.Response) -> object:
    try:
        return response.json()
    except ValueError:
        return None


def _error_from_response(
    response: httpx.Response, payload: object, *, collaborator: Collaborator
) -> CollaboratorError:
    if isinstance(payload, dict) and "error" in payload:
        try:
            detail = ErrorResponse.model_validate(payload).error
        except PayloadValidationError:
            pass
        else:
            log.debug("Bridge error %s: %s", detail.code, detail.message)
            return CollaboratorError(
                detail.message, collaborator=collaborator, cause=detail.cause, code=detail.code
            )
    return CollaboratorError(
        f"Bridge returned HTTP {response.status_code}",
        collaborator=collaborator,
        cause=response.text or None,
        code=str(response.status_code),
    )
