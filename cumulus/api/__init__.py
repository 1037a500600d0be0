"""Domain model and provider configuration protocol."""

from .model import ClusterIdentity as ClusterIdentity
from .model import ClusterState as ClusterState
from .model import Complexity as Complexity
from .model import Flavor as Flavor
from .model import Host as Host
from .model import HostDefinition as HostDefinition
from .model import HostRequest as HostRequest
from .model import HostStatus as HostStatus
from .model import Image as Image
from .model import IPVersion as IPVersion
from .model import KeyPair as KeyPair
from .model import Network as Network
from .model import NetworkRequest as NetworkRequest
from .model import Node as Node
from .model import NodeType as NodeType
from .model import SizingRequirements as SizingRequirements
from .model import Template as Template
from .provider import ProviderConfig as ProviderConfig
