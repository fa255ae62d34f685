from __future__ import annotations

import itertools
import logging
import threading
import uuid
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from serving_conformance.core.errors import AlreadyExistsError, ConflictError, NotFoundError
from serving_conformance.core.resources.models import (
    CONFIGURATION_GENERATION_LABEL,
    CONFIGURATION_LABEL,
    Condition,
    Configuration,
    ConfigurationStatus,
    ObjectMeta,
    Revision,
    RevisionStatus,
)

from .base import ResourceAccessor

log = logging.getLogger("conformance.fake")

Key = Tuple[str, str]


@dataclass
class FakeController:
    """Deterministic stand-in for the serving controller.

    lag: number of Configuration reads that see stale status before a pending
    generation is reconciled. The fault flags break the contract on purpose so the
    verifier can be shown to catch it.
    """

    lag: int = 0
    propagate_metadata: bool = False
    revision_on_metadata_change: bool = False
    fail_readiness: bool = False


class InMemoryServingStore:
    """
    Thread-safe in-memory store for Configurations and the Revisions they own.
    """

    def __init__(self, *, controller: Optional[FakeController] = None):
        self.controller = controller or FakeController()
        self._lock = threading.RLock()
        self._configs: Dict[Key, Configuration] = {}
        self._revisions: Dict[Key, Revision] = {}
        self._pending: Dict[Key, int] = {}
        self._versions = itertools.count(1)

    def _next_version(self) -> str:
        return str(next(self._versions))

    # ------------------------------------------------------------
    # Configurations
    # ------------------------------------------------------------
    def create_configuration(self, namespace: str, cfg: Configuration) -> Configuration:
        key = (namespace, cfg.metadata.name)
        with self._lock:
            if key in self._configs:
                raise AlreadyExistsError(
                    f'configurations "{cfg.metadata.name}" already exists', resource=cfg.metadata.name, status_code=409
                )
            stored = cfg.model_copy(deep=True)
            stored.metadata.namespace = namespace
            stored.metadata.uid = str(uuid.uuid4())
            stored.metadata.generation = 1
            stored.metadata.resource_version = self._next_version()
            stored.status = ConfigurationStatus()
            self._configs[key] = stored
            self._pending[key] = self.controller.lag
            log.debug("created configuration %s/%s", namespace, cfg.metadata.name)
            return stored.model_copy(deep=True)

    def get_configuration(self, namespace: str, name: str) -> Configuration:
        key = (namespace, name)
        with self._lock:
            if key not in self._configs:
                raise NotFoundError(f'configurations "{name}" not found', resource=name, status_code=404)
            self._tick(key)
            return self._configs[key].model_copy(deep=True)

    def update_configuration(self, namespace: str, cfg: Configuration) -> Configuration:
        name = cfg.metadata.name
        key = (namespace, name)
        with self._lock:
            current = self._configs.get(key)
            if current is None:
                raise NotFoundError(f'configurations "{name}" not found', resource=name, status_code=404)

            rv = cfg.metadata.resource_version
            if rv is not None and rv != current.metadata.resource_version:
                raise ConflictError(
                    f'Operation cannot be fulfilled on configurations "{name}": '
                    "the object has been modified; please apply your changes to the latest version and try again",
                    resource=name,
                    status_code=409,
                )

            spec_changed = cfg.spec != current.spec
            metadata_changed = (
                cfg.metadata.labels != current.metadata.labels
                or cfg.metadata.annotations != current.metadata.annotations
            )

            updated = current.model_copy(deep=True)
            updated.metadata.labels = dict(cfg.metadata.labels)
            updated.metadata.annotations = dict(cfg.metadata.annotations)
            updated.metadata.resource_version = self._next_version()
            if spec_changed:
                updated.spec = cfg.spec.model_copy(deep=True)
                updated.metadata.generation += 1
                self._pending[key] = self.controller.lag
            elif metadata_changed and self.controller.revision_on_metadata_change:
                self._pending[key] = self.controller.lag

            self._configs[key] = updated

            if metadata_changed and self.controller.propagate_metadata:
                self._leak_metadata(namespace, updated)

            return updated.model_copy(deep=True)

    def list_configurations(self, namespace: str) -> List[Configuration]:
        with self._lock:
            return [c.model_copy(deep=True) for (ns, _), c in sorted(self._configs.items()) if ns == namespace]

    def delete_configuration(self, namespace: str, name: str) -> None:
        key = (namespace, name)
        with self._lock:
            if self._configs.pop(key, None) is None:
                raise NotFoundError(f'configurations "{name}" not found', resource=name, status_code=404)
            self._pending.pop(key, None)
            owned = [
                k
                for k, r in self._revisions.items()
                if k[0] == namespace and r.metadata.labels.get(CONFIGURATION_LABEL) == name
            ]
            for k in owned:
                del self._revisions[k]

    # ------------------------------------------------------------
    # Revisions
    # ------------------------------------------------------------
    def get_revision(self, namespace: str, name: str) -> Revision:
        with self._lock:
            rev = self._revisions.get((namespace, name))
            if rev is None:
                raise NotFoundError(f'revisions "{name}" not found', resource=name, status_code=404)
            return rev.model_copy(deep=True)

    def list_revisions(self, namespace: str) -> List[Revision]:
        with self._lock:
            return [r.model_copy(deep=True) for (ns, _), r in sorted(self._revisions.items()) if ns == namespace]

    # ------------------------------------------------------------
    # Controller
    # ------------------------------------------------------------
    def reconcile_all(self) -> int:
        """Settle every pending Configuration now, ignoring lag."""
        with self._lock:
            keys = list(self._pending)
            for key in keys:
                self._reconcile(key)
            return len(keys)

    def _tick(self, key: Key) -> None:
        remaining = self._pending.get(key)
        if remaining is None:
            return
        if remaining <= 0:
            self._reconcile(key)
        else:
            self._pending[key] = remaining - 1

    def _reconcile(self, key: Key) -> None:
        self._pending.pop(key, None)
        cfg = self._configs.get(key)
        if cfg is None:
            return
        namespace, name = key

        owned = sum(
            1 for (ns, _), r in self._revisions.items()
            if ns == namespace and r.metadata.labels.get(CONFIGURATION_LABEL) == name
        )
        rev_name = f"{name}-{owned + 1:05d}"
        template = cfg.spec.template
        ready = not self.controller.fail_readiness

        labels = dict(template.metadata.labels)
        labels[CONFIGURATION_LABEL] = name
        labels[CONFIGURATION_GENERATION_LABEL] = str(cfg.metadata.generation)

        rev = Revision(
            metadata=ObjectMeta(
                name=rev_name,
                namespace=namespace,
                uid=str(uuid.uuid4()),
                generation=1,
                resource_version=self._next_version(),
                labels=labels,
                annotations=dict(template.metadata.annotations),
            ),
            spec=template.spec.model_copy(deep=True),
            status=RevisionStatus(
                observed_generation=1,
                conditions=[_ready_condition(ready)],
            ),
        )
        self._revisions[(namespace, rev_name)] = rev

        cfg.status.observed_generation = cfg.metadata.generation
        cfg.status.latest_created_revision_name = rev_name
        if ready:
            cfg.status.latest_ready_revision_name = rev_name
        cfg.status.conditions = [_ready_condition(ready)]
        log.debug("reconciled configuration %s/%s -> %s", namespace, name, rev_name)

    def _leak_metadata(self, namespace: str, cfg: Configuration) -> None:
        rev_name = cfg.status.latest_created_revision_name
        rev = self._revisions.get((namespace, rev_name)) if rev_name else None
        if rev is None:
            return
        rev.metadata.labels.update(cfg.metadata.labels)
        rev.metadata.annotations.update(cfg.metadata.annotations)


def _ready_condition(ready: bool) -> Condition:
    if ready:
        return Condition(type="Ready", status="True")
    return Condition(type="Ready", status="False", reason="RevisionFailed", message="Revision failed to become ready")


class InMemoryAccessor(ResourceAccessor):
    name = "memory"

    def __init__(self, store: InMemoryServingStore, *, namespace: str = "default"):
        self.store = store
        self.namespace = namespace

    def get_configuration(self, name: str) -> Configuration:
        return self.store.get_configuration(self.namespace, name)

    def update_configuration(self, cfg: Configuration) -> Configuration:
        return self.store.update_configuration(self.namespace, cfg)

    def list_configurations(self) -> List[Configuration]:
        return self.store.list_configurations(self.namespace)

    def create_configuration(self, cfg: Configuration) -> Configuration:
        return self.store.create_configuration(self.namespace, cfg)

    def delete_configuration(self, name: str) -> None:
        self.store.delete_configuration(self.namespace, name)

    def get_revision(self, name: str) -> Revision:
        return self.store.get_revision(self.namespace, name)

    def list_revisions(self) -> List[Revision]:
        return self.store.list_revisions(self.namespace)


_SHARED_STORE: Optional[InMemoryServingStore] = None
_SHARED_STORE_LOCK = threading.Lock()


def get_shared_store(*, controller: Optional[FakeController] = None) -> InMemoryServingStore:
    """Process-wide store. `controller` only applies to the call that creates it."""
    global _SHARED_STORE
    with _SHARED_STORE_LOCK:
        if _SHARED_STORE is None:
            _SHARED_STORE = InMemoryServingStore(controller=controller)
        elif controller is not None and controller != _SHARED_STORE.controller:
            log.warning(
                "shared store already exists with %s; ignoring requested %s", _SHARED_STORE.controller, controller
            )
        return _SHARED_STORE
