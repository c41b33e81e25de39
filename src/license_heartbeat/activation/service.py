"""Activation manager: reuse or claim a machine seat for this fingerprint."""

from license_heartbeat.common.exceptions import ActivationRejected, GatewayError, LicenseInvalid
from license_heartbeat.common.logging import get_logger
from license_heartbeat.common.schemas import Machine, ValidationCode, ValidationResult
from license_heartbeat.gateway import LicensingGateway
from license_heartbeat.processes.service import ProcessRegistrar

logger = get_logger("activation")

# Codes meaning "no seat for this fingerprint yet" rather than "license invalid".
#   FINGERPRINT_SCOPE_MISMATCH: other machines hold seats, none match ours
#   NO_MACHINES: floating license with no machines
#   NO_MACHINE: node-locked license with no machine
SEAT_CLAIMABLE_CODES = frozenset({
    ValidationCode.FINGERPRINT_SCOPE_MISMATCH,
    ValidationCode.NO_MACHINES,
    ValidationCode.NO_MACHINE,
})


def requires_activation(validation: ValidationResult) -> bool:
    """Decide whether a failed validation permits claiming a new seat.

    Raises LicenseInvalid for every code outside SEAT_CLAIMABLE_CODES.
    """
    if validation.valid:
        return False
    if validation.code in SEAT_CLAIMABLE_CODES:
        return True
    raise LicenseInvalid(validation.detail, validation.raw_code or validation.code.value)


class ActivationManager:
    """Machine activation operations."""

    def __init__(self, gateway: LicensingGateway, registrar: ProcessRegistrar):
        self.gateway = gateway
        self.registrar = registrar

    async def activate(self, fingerprint: str, key: str) -> Machine:
        """Return the machine seat for this fingerprint, claiming one if needed.

        The validation is scoped to the fingerprint so a license that is
        valid on some other machine is not reported valid for this one.
        Exactly one claim attempt is made; retrying is up to the caller.
        """
        validation = await self.gateway.validate_key(fingerprint, key)
        logger.info(
            "Validated license %s: valid=%s code=%s",
            validation.license_id, validation.valid, validation.raw_code,
            extra={"license_id": validation.license_id, "fingerprint": fingerprint},
        )

        if not requires_activation(validation):
            machine = await self.registrar.retrieve(fingerprint, key, kind="machines")
            logger.info("Machine %s already activated", machine.id, extra={"machine_id": machine.id})
            return machine

        try:
            machine = await self.gateway.create_machine(fingerprint, validation.license_id, key)
        except GatewayError as e:
            raise ActivationRejected.from_gateway_error(e) from e

        logger.info(
            "Machine %s activated for license %s", machine.id, validation.license_id,
            extra={"machine_id": machine.id, "license_id": validation.license_id},
        )
        return machine

    async def deactivate(self, machine_id: str, key: str) -> None:
        """Release a machine seat. Not part of the run lifecycle."""
        await self.gateway.delete_machine(machine_id, key)
        logger.info("Machine %s deactivated", machine_id, extra={"machine_id": machine_id})
