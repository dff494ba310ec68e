from enum import Enum

# Implicit layer of a network whose edges carry no layer label
DEFAULT_LAYER = "default"
# Pseudo-layer holding the union of all layers in multilayer input
AGGREGATE_LAYER = "aggregate"


class EdgeType(str, Enum):
    """Edge type (DIRECTED, UNDIRECTED).

    Attributes:
        DIRECTED: Every edge is an ordered (source, target) pair
        UNDIRECTED: Every edge is an unordered pair
    """

    DIRECTED = "directed"
    UNDIRECTED = "undirected"

    @classmethod
    def from_flag(cls, directed: bool) -> "EdgeType":
        return cls.DIRECTED if directed else cls.UNDIRECTED
