from .base import ClusterClient, HttpProber, HttpResponse, ReplicaStatus

__all__ = ["ClusterClient", "HttpProber", "HttpResponse", "ReplicaStatus"]
