from __future__ import annotations

import logging
from typing import Iterable, List

from core.domain.entities.vault_entity import NetworkDeploymentRecord
from core.domain.schemas.deployment_types import DeterminismReport
from core.services.exceptions import DeterminismViolation
from core.services.normalize import _norm_lower

logger = logging.getLogger(__name__)


class AddressDeterminismChecker:
    """
    Verifies that every successful deployment of a vault landed at the
    same address.

    A violation is reported, never raised: the successful deployments are
    still worth keeping, and callers must not assume it resolves itself.
    """

    def check(
        self,
        records: Iterable[NetworkDeploymentRecord],
        known_addresses: Iterable[str] = (),
    ) -> DeterminismReport:
        addresses: List[str] = [a for a in known_addresses if a]
        addresses += [r.address for r in records if r.is_deployed and r.address]

        distinct: List[str] = []
        seen = set()
        for addr in addresses:
            k = _norm_lower(addr)
            if k not in seen:
                seen.add(k)
                distinct.append(addr)

        if not distinct:
            return DeterminismReport(common_address=None, determinism_violation=False)

        if len(distinct) > 1:
            violation = DeterminismViolation(distinct)
            logger.warning("%s", violation.msg)
            return DeterminismReport(
                common_address=None,
                determinism_violation=True,
                distinct_addresses=distinct,
            )

        if len(addresses) > 1:
            logger.info("Deterministic deployment confirmed: %s on %d networks", distinct[0], len(addresses))

        return DeterminismReport(
            common_address=distinct[0],
            determinism_violation=False,
            distinct_addresses=distinct,
        )
