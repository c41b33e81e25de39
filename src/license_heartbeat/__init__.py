"""License heartbeat: machine activation and process heartbeats for a license."""

from license_heartbeat.activation.service import ActivationManager
from license_heartbeat.gateway import LicensingGateway
from license_heartbeat.heartbeat.scheduler import CancelHandle, HeartbeatScheduler
from license_heartbeat.lifecycle.coordinator import LifecycleCoordinator, LifecycleState
from license_heartbeat.processes.service import ProcessRegistrar

__all__ = [
    "ActivationManager",
    "CancelHandle",
    "HeartbeatScheduler",
    "LicensingGateway",
    "LifecycleCoordinator",
    "LifecycleState",
    "ProcessRegistrar",
]
__version__ = "0.1.0"
