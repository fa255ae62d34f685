from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import ValidationError
import requests

from serving_conformance.core.errors import (
    AccessorError,
    AlreadyExistsError,
    ConflictError,
    NotFoundError,
    TransientAccessError,
)
from serving_conformance.core.resources.models import (
    API_VERSION,
    Configuration,
    ConfigurationList,
    Revision,
    RevisionList,
)

from .base import ResourceAccessor

log = logging.getLogger("conformance.http")

_TRANSIENT_STATUSES = {429, 500, 502, 503, 504}


def api_prefix(namespace: str) -> str:
    return f"/apis/{API_VERSION}/namespaces/{namespace}"


class HttpResourceAccessor(ResourceAccessor):
    """Talks to a serving API over HTTP.

    `session` is anything with the requests.Session call surface
    (get/put/post/delete returning objects with status_code/json()/text);
    FastAPI's TestClient qualifies when base_url is "".
    """

    name = "http"

    def __init__(
        self,
        base_url: str,
        *,
        namespace: str = "default",
        session: Optional[Any] = None,
        timeout: float = 20.0,
        headers: Optional[Dict[str, str]] = None,
    ):
        self.base_url = (base_url or "").rstrip("/")
        self.namespace = namespace
        self.session = session if session is not None else requests.Session()
        self.timeout = timeout
        self.headers = dict(headers or {})

    def _url(self, kind: str, name: Optional[str] = None) -> str:
        url = f"{self.base_url}{api_prefix(self.namespace)}/{kind}"
        if name:
            url += f"/{name}"
        return url

    def _call(
        self,
        method: str,
        kind: str,
        name: Optional[str] = None,
        body: Optional[dict] = None,
        resource: Optional[str] = None,
    ):
        url = self._url(kind, name)
        resource = resource or name
        kwargs: Dict[str, Any] = {"timeout": self.timeout}
        if self.headers:
            kwargs["headers"] = self.headers
        if body is not None:
            kwargs["json"] = body
        try:
            resp = getattr(self.session, method)(url, **kwargs)
        except (requests.ConnectionError, requests.Timeout) as e:
            raise TransientAccessError(f"{method.upper()} {url} failed: {e}", resource=resource) from e
        except requests.RequestException as e:
            raise AccessorError(f"{method.upper()} {url} failed: {e}", resource=resource) from e

        status = int(resp.status_code)
        if status == 204:
            return None
        if status < 300:
            try:
                return resp.json()
            except ValueError as e:
                raise AccessorError(
                    f"{method.upper()} {url} returned a non-JSON body", resource=resource, status_code=status
                ) from e

        message = _status_message(resp)
        log.debug("%s %s -> %s %s", method.upper(), url, status, message)
        if status == 404:
            raise NotFoundError(message, resource=resource, status_code=status)
        if status == 409:
            if method == "post":
                raise AlreadyExistsError(message, resource=resource, status_code=status)
            raise ConflictError(message, resource=resource, status_code=status)
        if status in _TRANSIENT_STATUSES:
            raise TransientAccessError(message, resource=resource, status_code=status)
        raise AccessorError(message, resource=resource, status_code=status)

    def get_configuration(self, name: str) -> Configuration:
        return _parse(Configuration, self._call("get", "configurations", name), name)

    def update_configuration(self, cfg: Configuration) -> Configuration:
        name = cfg.metadata.name
        return _parse(Configuration, self._call("put", "configurations", name, body=cfg.to_wire()), name)

    def list_configurations(self) -> List[Configuration]:
        return _parse(ConfigurationList, self._call("get", "configurations"), "configurations").items

    def create_configuration(self, cfg: Configuration) -> Configuration:
        name = cfg.metadata.name
        return _parse(Configuration, self._call("post", "configurations", body=cfg.to_wire(), resource=name), name)

    def delete_configuration(self, name: str) -> None:
        self._call("delete", "configurations", name)

    def get_revision(self, name: str) -> Revision:
        return _parse(Revision, self._call("get", "revisions", name), name)

    def list_revisions(self) -> List[Revision]:
        return _parse(RevisionList, self._call("get", "revisions"), "revisions").items


def _parse(model, data, resource: str):
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise AccessorError(
            f"malformed {model.__name__} for {resource}: {e.error_count()} validation error(s)", resource=resource
        ) from e


def _status_message(resp) -> str:
    try:
        body = resp.json()
    except ValueError:
        return (resp.text or "").strip() or f"HTTP {resp.status_code}"
    if isinstance(body, dict):
        return str(body.get("message") or body.get("detail") or body)
    return str(body)
