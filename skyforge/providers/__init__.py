from skyforge.providers.base import ComputeProvider, CreateInstanceRequest, InstanceInfo

__all__ = ["ComputeProvider", "CreateInstanceRequest", "InstanceInfo"]
