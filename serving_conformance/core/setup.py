from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import Dict, Iterator, Optional

from serving_conformance.core.accessor.base import ResourceAccessor
from serving_conformance.core.errors import AccessorError, NotFoundError
from serving_conformance.core.naming import ResourceNames
from serving_conformance.core.resources.models import (
    Configuration,
    ConfigurationSpec,
    Container,
    ObjectMeta,
    RevisionSpec,
    RevisionTemplate,
)

log = logging.getLogger("conformance.setup")


def configuration_for(
    names: ResourceNames,
    *,
    labels: Optional[Dict[str, str]] = None,
    annotations: Optional[Dict[str, str]] = None,
) -> Configuration:
    return Configuration(
        metadata=ObjectMeta(
            name=names.config,
            labels=dict(labels or {}),
            annotations=dict(annotations or {}),
        ),
        spec=ConfigurationSpec(
            template=RevisionTemplate(spec=RevisionSpec(containers=[Container(image=names.image)])),
        ),
    )


def create_configuration(accessor: ResourceAccessor, names: ResourceNames) -> Configuration:
    log.info("Creating new configuration %s", names.config)
    return accessor.create_configuration(configuration_for(names))


@contextmanager
def ensure_teardown(accessor: ResourceAccessor, names: ResourceNames) -> Iterator[ResourceNames]:
    """Delete the Configuration on exit, whatever happened inside the block."""
    try:
        yield names
    finally:
        try:
            accessor.delete_configuration(names.config)
            log.debug("Deleted configuration %s", names.config)
        except NotFoundError:
            pass
        except AccessorError as e:
            log.warning("Teardown of configuration %s failed: %s", names.config, e)
