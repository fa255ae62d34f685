"""Serving API surface backed by the in-memory platform.

Kubernetes-style paths and Status error bodies, so the HTTP accessor can run the
conformance scenarios against this server exactly as against a cluster.
"""
from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, Request
from pydantic import ValidationError
from starlette.responses import JSONResponse

from serving_conformance.core.accessor.memory import FakeController, InMemoryServingStore, get_shared_store
from serving_conformance.core.config import load_settings
from serving_conformance.core.errors import AccessorError, AlreadyExistsError, ConflictError, NotFoundError
from serving_conformance.core.resources.models import (
    API_VERSION,
    Configuration,
    ConfigurationList,
    RevisionList,
)

router = APIRouter(prefix=f"/apis/{API_VERSION}/namespaces/{{namespace}}")


def get_store() -> InMemoryServingStore:
    # process-wide store; tests override this dependency
    return get_shared_store(controller=FakeController(lag=load_settings().fake_controller_lag))


def status_response(code: int, reason: str, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=code,
        content={
            "kind": "Status",
            "apiVersion": "v1",
            "status": "Failure",
            "reason": reason,
            "code": code,
            "message": message,
        },
    )


def accessor_error_handler(request: Request, exc: AccessorError) -> JSONResponse:
    if isinstance(exc, NotFoundError):
        return status_response(404, "NotFound", str(exc))
    if isinstance(exc, AlreadyExistsError):
        return status_response(409, "AlreadyExists", str(exc))
    if isinstance(exc, ConflictError):
        return status_response(409, "Conflict", str(exc))
    return status_response(exc.status_code or 500, "InternalError", str(exc))


def _parse_configuration(body: Dict[str, Any]):
    try:
        return Configuration.model_validate(body), None
    except ValidationError as e:
        return None, status_response(422, "Invalid", f"Configuration is invalid: {e.error_count()} error(s)")


# ------------------------------------------------------------
# Configurations
# ------------------------------------------------------------
@router.get("/configurations")
def list_configurations(namespace: str, store: InMemoryServingStore = Depends(get_store)):
    return ConfigurationList(items=store.list_configurations(namespace)).to_wire()


@router.post("/configurations", status_code=201)
def create_configuration(
    namespace: str,
    body: Dict[str, Any] = Body(...),
    store: InMemoryServingStore = Depends(get_store),
):
    cfg, err = _parse_configuration(body)
    if err is not None:
        return err
    return store.create_configuration(namespace, cfg).to_wire()


@router.get("/configurations/{name}")
def get_configuration(namespace: str, name: str, store: InMemoryServingStore = Depends(get_store)):
    return store.get_configuration(namespace, name).to_wire()


@router.put("/configurations/{name}")
def replace_configuration(
    namespace: str,
    name: str,
    body: Dict[str, Any] = Body(...),
    store: InMemoryServingStore = Depends(get_store),
):
    cfg, err = _parse_configuration(body)
    if err is not None:
        return err
    if cfg.metadata.name != name:
        return status_response(400, "BadRequest", f"metadata.name {cfg.metadata.name!r} does not match {name!r}")
    return store.update_configuration(namespace, cfg).to_wire()


@router.delete("/configurations/{name}")
def delete_configuration(namespace: str, name: str, store: InMemoryServingStore = Depends(get_store)):
    store.delete_configuration(namespace, name)
    return {"kind": "Status", "apiVersion": "v1", "status": "Success", "details": {"name": name}}


# ------------------------------------------------------------
# Revisions (read-only: created by the controller)
# ------------------------------------------------------------
@router.get("/revisions")
def list_revisions(namespace: str, store: InMemoryServingStore = Depends(get_store)):
    return RevisionList(items=store.list_revisions(namespace)).to_wire()


@router.get("/revisions/{name}")
def get_revision(namespace: str, name: str, store: InMemoryServingStore = Depends(get_store)):
    return store.get_revision(namespace, name).to_wire()
