import time
from typing import Optional

from market_sensor.exceptions import MarketSensorError
from market_sensor.models.schemas import (
    NarrativeTag,
    Persona,
    ProofCreate,
    ProofRecord,
    utcnow,
)

ID_ATTEMPTS = 50
_BASE36 = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"


def to_base36(n: int) -> str:
    if n == 0:
        return "0"
    digits = []
    while n:
        n, rem = divmod(n, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def make_proof_id(narrative_tag: NarrativeTag, persona: Persona, millis: Optional[int] = None) -> str:
    """PROOF-<NARRATIVE>-<Persona sans spaces>-<base36 ms timestamp>."""
    millis = int(time.time() * 1000) if millis is None else millis
    return f"PROOF-{narrative_tag.value.upper()}-{''.join(persona.value.split())}-{to_base36(millis)}"


def new_proof(payload: ProofCreate, millis: Optional[int] = None) -> ProofRecord:
    now = utcnow()
    return ProofRecord(
        proof_id=make_proof_id(payload.narrative_tag, payload.persona_tag, millis),
        evidence_sentence=payload.evidence_sentence,
        source_link=payload.source_link,
        persona_tag=payload.persona_tag,
        narrative_tag=payload.narrative_tag,
        stage=payload.stage,
        expiry_date=payload.expiry_date,
        created_at=now,
        updated_at=now,
    )


def create_proof(store, payload: ProofCreate) -> ProofRecord:
    """Store a new proof under a fresh id, never replacing an existing record.

    Ids only carry millisecond resolution, so a taken id is retried with the
    next millisecond.
    """
    millis = int(time.time() * 1000)
    for _ in range(ID_ATTEMPTS):
        proof = new_proof(payload, millis)
        if store.insert_proof(proof):
            return proof
        millis += 1
    raise MarketSensorError(f"Could not allocate a proof id after {ID_ATTEMPTS} attempts")
