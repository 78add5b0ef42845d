import logging
from typing import Callable, List, Sequence

from market_sensor.models.schemas import (
    ActionItem,
    ActionStatus,
    DriftImplication,
    ProofQuery,
    ProofRecord,
)

logger = logging.getLogger(__name__)

INSUFFICIENT_DATA_MARKER = "[INSUFFICIENT DATA—PROOF NEEDED]"
INSUFFICIENT_DATA_STEP = f"{INSUFFICIENT_DATA_MARKER} Add proof to vault to validate this counter-move."
VALIDATED_STEP = "Review proof and decide on counter-messaging strategy"

ProofSearch = Callable[[ProofQuery], List[ProofRecord]]


class ProofMatcher:
    """Gates counter-moves on proof: no matching record, no VALIDATED status.

    ``search`` is any callable taking a ``ProofQuery`` (normally
    ``Store.search_proofs``). The gate is existence of an exact
    (narrative, persona, stage) match; expiry dates are not consulted.
    """

    def __init__(self, search: ProofSearch):
        self.search = search

    def validate_one(self, implication: DriftImplication) -> ActionItem:
        proofs = self.search(ProofQuery(
            narrative_tag=implication.narrative_tag,
            persona=implication.persona,
            stage=implication.stage,
        ))
        if proofs:
            return ActionItem(
                line=implication.text,
                proof_id=proofs[0].proof_id,
                next_step=VALIDATED_STEP,
                narrative_tag=implication.narrative_tag,
                persona=implication.persona,
                stage=implication.stage,
                status=ActionStatus.VALIDATED,
            )
        logger.debug("No proof for %s/%s/%s", implication.narrative_tag.value,
                     implication.persona.value, implication.stage.value)
        return ActionItem(
            line=implication.text,
            proof_id=None,
            next_step=INSUFFICIENT_DATA_STEP,
            narrative_tag=implication.narrative_tag,
            persona=implication.persona,
            stage=implication.stage,
            status=ActionStatus.INSUFFICIENT_DATA,
        )

    def validate(self, implications: Sequence[DriftImplication]) -> List[ActionItem]:
        return [self.validate_one(imp) for imp in implications]
