from __future__ import annotations

from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


API_VERSION = "serving.knative.dev/v1"

# Labels the controller stamps on every Revision it creates.
CONFIGURATION_LABEL = "serving.knative.dev/configuration"
CONFIGURATION_GENERATION_LABEL = "serving.knative.dev/configurationGeneration"

ConditionStatus = Literal["True", "False", "Unknown"]


class _K8sModel(BaseModel):
    # Wire format is camelCase like the Kubernetes API; python side stays snake_case.
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_wire(self) -> dict:
        return self.model_dump(by_alias=True, exclude_none=True, mode="json")


class ObjectMeta(_K8sModel):
    name: str
    namespace: Optional[str] = None
    uid: Optional[str] = None
    generation: int = 0
    resource_version: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)


class Condition(_K8sModel):
    type: str
    status: ConditionStatus = "Unknown"
    reason: Optional[str] = None
    message: Optional[str] = None


class TemplateMeta(_K8sModel):
    labels: Dict[str, str] = Field(default_factory=dict)
    annotations: Dict[str, str] = Field(default_factory=dict)


class Container(_K8sModel):
    image: str
    env: Dict[str, str] = Field(default_factory=dict)


class RevisionSpec(_K8sModel):
    containers: List[Container] = Field(default_factory=list)
    timeout_seconds: Optional[int] = None


class RevisionTemplate(_K8sModel):
    metadata: TemplateMeta = Field(default_factory=TemplateMeta)
    spec: RevisionSpec = Field(default_factory=RevisionSpec)


class ConfigurationSpec(_K8sModel):
    template: RevisionTemplate = Field(default_factory=RevisionTemplate)


class ConfigurationStatus(_K8sModel):
    observed_generation: int = 0
    latest_created_revision_name: Optional[str] = None
    latest_ready_revision_name: Optional[str] = None
    conditions: List[Condition] = Field(default_factory=list)


class RevisionStatus(_K8sModel):
    observed_generation: int = 0
    conditions: List[Condition] = Field(default_factory=list)


def _find_condition(conditions: List[Condition], cond_type: str) -> Optional[Condition]:
    for c in conditions:
        if c.type == cond_type:
            return c
    return None


class Configuration(_K8sModel):
    api_version: str = API_VERSION
    kind: Literal["Configuration"] = "Configuration"
    metadata: ObjectMeta
    spec: ConfigurationSpec = Field(default_factory=ConfigurationSpec)
    status: ConfigurationStatus = Field(default_factory=ConfigurationStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    def condition(self, cond_type: str) -> Optional[Condition]:
        return _find_condition(self.status.conditions, cond_type)


class Revision(_K8sModel):
    api_version: str = API_VERSION
    kind: Literal["Revision"] = "Revision"
    metadata: ObjectMeta
    spec: RevisionSpec = Field(default_factory=RevisionSpec)
    status: RevisionStatus = Field(default_factory=RevisionStatus)

    @property
    def name(self) -> str:
        return self.metadata.name

    def condition(self, cond_type: str) -> Optional[Condition]:
        return _find_condition(self.status.conditions, cond_type)


class ConfigurationList(_K8sModel):
    api_version: str = API_VERSION
    kind: Literal["ConfigurationList"] = "ConfigurationList"
    items: List[Configuration] = Field(default_factory=list)


class RevisionList(_K8sModel):
    api_version: str = API_VERSION
    kind: Literal["RevisionList"] = "RevisionList"
    items: List[Revision] = Field(default_factory=list)
