from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List

from serving_conformance.core.resources.models import Configuration, Revision


class ResourceAccessor(ABC):
    """Typed access to serving resources in one namespace.

    Implementations raise ``AccessorError`` subclasses. ``TransientAccessError`` is
    the only one callers may retry.
    """

    name: str
    namespace: str

    @abstractmethod
    def get_configuration(self, name: str) -> Configuration:
        """Fetch a fresh snapshot. Never served from a cache."""

    @abstractmethod
    def update_configuration(self, cfg: Configuration) -> Configuration:
        """Replace the Configuration; returns the object as persisted by the store.

        Raises ConflictError when cfg.metadata.resource_version is stale.
        """

    @abstractmethod
    def list_configurations(self) -> List[Configuration]:
        ...

    @abstractmethod
    def create_configuration(self, cfg: Configuration) -> Configuration:
        ...

    @abstractmethod
    def delete_configuration(self, name: str) -> None:
        ...

    @abstractmethod
    def get_revision(self, name: str) -> Revision:
        ...

    @abstractmethod
    def list_revisions(self) -> List[Revision]:
        ...
