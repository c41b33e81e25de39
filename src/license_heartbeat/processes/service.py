"""Process registrar: register and deregister this process against a machine seat."""

import os
from typing import Optional, Union

from license_heartbeat.common.exceptions import GatewayError
from license_heartbeat.common.logging import get_logger
from license_heartbeat.common.schemas import Machine, Process
from license_heartbeat.gateway import LicensingGateway

logger = get_logger("processes")


class ProcessRegistrar:
    """Process registration operations. Holds no state between calls."""

    def __init__(self, gateway: LicensingGateway):
        self.gateway = gateway

    async def register(self, machine: Machine, key: str, pid: Optional[str] = None) -> Process:
        """Create a process resource for the machine carrying the local pid."""
        pid = pid or str(os.getpid())
        process = await self.gateway.create_process(pid, machine.id, key)
        if process.interval is None:
            raise GatewayError(
                [{"title": "Invalid response", "detail": "Process has no heartbeat interval"}]
            )
        logger.info(
            "Process %s spawned (pid=%s machine=%s interval=%s)",
            process.id, pid, machine.id, process.interval,
            extra={"process_id": process.id, "machine_id": machine.id},
        )
        return process

    async def deregister(self, process_id: str, key: str) -> None:
        """Delete the process resource; a no-content response counts as success."""
        await self.gateway.delete_process(process_id, key)
        logger.info("Process %s killed", process_id, extra={"process_id": process_id})

    async def retrieve(
        self, resource_id: str, key: str, kind: str = "machines"
    ) -> Union[Machine, Process]:
        """Look up a machine (by id or fingerprint) or a process by id."""
        if kind == "machines":
            return await self.gateway.retrieve_machine(resource_id, key)
        if kind == "processes":
            return await self.gateway.retrieve_process(resource_id, key)
        raise ValueError(f"Unsupported resource kind: {kind!r}")
