"""Resource gateway: read-only access to Fluid and Kubernetes resources."""

from fluid_diagnose.gateway.client import KubernetesGateway, ResourceGateway
from fluid_diagnose.gateway.errors import DatasetNotFoundError, GatewayError

__all__ = [
    "DatasetNotFoundError",
    "GatewayError",
    "KubernetesGateway",
    "ResourceGateway",
]
