"""Tests for market_sensor.services.proof_matcher."""

import pytest

from market_sensor.models.schemas import (
    ActionStatus,
    DriftImplication,
    NarrativeTag,
    Persona,
    ProofRecord,
    Severity,
    Stage,
)
from market_sensor.services.proof_matcher import (
    INSUFFICIENT_DATA_STEP,
    VALIDATED_STEP,
    ProofMatcher,
)


def _implication(narrative=NarrativeTag.INNOVATION, persona=Persona.VP_ENGINEERING,
                 stage=Stage.CONSIDERATION, text="New product terms added: Lakehouse"):
    return DriftImplication(text=text, so_what="Investigate.", narrative_tag=narrative,
                            persona=persona, stage=stage, severity=Severity.MEDIUM)


def _proof(proof_id, narrative=NarrativeTag.TRUST, persona=Persona.CTO, stage=Stage.AWARENESS):
    return ProofRecord(proof_id=proof_id, evidence_sentence="SOC 2 Type II since 2023",
                       source_link="https://example.com/trust", persona_tag=persona,
                       narrative_tag=narrative, stage=stage)


class ListProofSource:
    """In-memory proof search that records every query it receives."""

    def __init__(self, proofs):
        self.proofs = proofs
        self.queries = []

    def __call__(self, query):
        self.queries.append(query)
        return [
            p for p in self.proofs
            if (query.narrative_tag is None or p.narrative_tag == query.narrative_tag)
            and (query.persona is None or p.persona_tag == query.persona)
            and (query.stage is None or p.stage == query.stage)
        ]


@pytest.fixture
def source():
    return ListProofSource([
        _proof("PROOF-TRUST-CTO-1"),
        _proof("PROOF-TRUST-CTO-2"),
        _proof("PROOF-TRUST-CFO-1", persona=Persona.CFO),
    ])


class TestProofMatcher:

    def test_missing_proof_is_insufficient(self, source):
        item = ProofMatcher(source).validate([_implication()])[0]
        assert item.status == ActionStatus.INSUFFICIENT_DATA
        assert item.proof_id is None
        assert "INSUFFICIENT DATA" in item.next_step
        assert item.next_step == INSUFFICIENT_DATA_STEP

    def test_first_match_validates(self, source):
        imp = _implication(NarrativeTag.TRUST, Persona.CTO, Stage.AWARENESS, text="Hero text updated")
        item = ProofMatcher(source).validate([imp])[0]
        assert item.status == ActionStatus.VALIDATED
        assert item.proof_id == "PROOF-TRUST-CTO-1"
        assert item.next_step == VALIDATED_STEP
        assert item.line == "Hero text updated"

    def test_all_three_filters_must_match(self, source):
        imp = _implication(NarrativeTag.TRUST, Persona.CTO, Stage.DECISION)
        assert ProofMatcher(source).validate([imp])[0].status == ActionStatus.INSUFFICIENT_DATA
        query = source.queries[0]
        assert (query.narrative_tag, query.persona, query.stage) == (
            NarrativeTag.TRUST, Persona.CTO, Stage.DECISION)

    def test_one_item_per_implication_in_order(self, source):
        imps = [
            _implication(text="first"),
            _implication(NarrativeTag.TRUST, Persona.CFO, Stage.AWARENESS, text="second"),
            _implication(text="third"),
        ]
        items = ProofMatcher(source).validate(imps)
        assert [i.line for i in items] == ["first", "second", "third"]
        assert [i.status for i in items] == [
            ActionStatus.INSUFFICIENT_DATA, ActionStatus.VALIDATED, ActionStatus.INSUFFICIENT_DATA]

    def test_validated_iff_proof_id(self, source):
        imps = [_implication(n, p, s) for n in NarrativeTag for p in (Persona.CTO, Persona.CFO)
                for s in (Stage.AWARENESS, Stage.DECISION)]
        for item in ProofMatcher(source).validate(imps):
            assert (item.status == ActionStatus.VALIDATED) == (item.proof_id is not None)

    def test_tags_copied_from_implication(self, source):
        item = ProofMatcher(source).validate([_implication()])[0]
        assert item.narrative_tag == NarrativeTag.INNOVATION
        assert item.persona == Persona.VP_ENGINEERING
        assert item.stage == Stage.CONSIDERATION

    def test_serialized_field_names(self, source):
        payload = ProofMatcher(source).validate([_implication()])[0].model_dump(mode="json", by_alias=True)
        assert set(payload) == {"line", "proofId", "nextStep", "narrativeTag", "persona", "stage", "status"}
        assert payload["status"] == "INSUFFICIENT_DATA"
        assert payload["proofId"] is None

    def test_expired_proof_still_validates(self):
        from datetime import datetime, timezone
        expired = _proof("PROOF-OLD").model_copy(update={"expiry_date": datetime(2000, 1, 1, tzinfo=timezone.utc)})
        item = ProofMatcher(ListProofSource([expired])).validate(
            [_implication(NarrativeTag.TRUST, Persona.CTO, Stage.AWARENESS)])[0]
        assert item.proof_id == "PROOF-OLD"
