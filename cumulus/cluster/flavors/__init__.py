from cumulus.api.model import Flavor
from cumulus.cluster.actors import BlueprintActors
from cumulus.cluster.flavors.boh import BohActors
from cumulus.cluster.flavors.swarm import SwarmActors


def actors_for(flavor: Flavor) -> BlueprintActors:
    match flavor:
        case Flavor.BOH:
            return BohActors()
        case Flavor.SWARM:
            return SwarmActors()
        case _:
            raise ValueError(f"Unsupported flavor: {flavor}")


__all__ = ["BohActors", "SwarmActors", "actors_for"]
