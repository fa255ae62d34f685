from .get_and_list import GetAndListScenario
from .metadata_update import MetadataUpdateScenario

SCENARIOS = {
    GetAndListScenario.name: GetAndListScenario,
    MetadataUpdateScenario.name: MetadataUpdateScenario,
}
