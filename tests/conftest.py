"""Shared pytest fixtures: a throwaway SQLite Store, snapshot factory and API client."""

import sys
from pathlib import Path
from typing import List, Optional

import pytest

BASE_DIR = Path(__file__).resolve().parent.parent
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))

from market_sensor.db.repo import Store
from market_sensor.models.schemas import Snapshot, new_id
from market_sensor.services.emailer import EmailResult


def make_snapshot(
    hero: str = "Fast and simple",
    subheads: Optional[List[str]] = None,
    pricing: Optional[List[str]] = None,
    url: str = "https://acme.io",
    name: str = "Acme",
) -> Snapshot:
    return Snapshot(
        id=new_id("snapshot"),
        competitor_url=url,
        competitor_name=name,
        hero_text=hero,
        subheads=["Built for data teams", "Connect every source"] if subheads is None else subheads,
        pricing_blocks=["Starter $9/mo"] if pricing is None else pricing,
        raw_html="<html></html>",
    )


class FakeEmailService:
    """Records sends instead of calling Resend."""

    def __init__(self, succeed: bool = True, enabled: bool = True):
        self.succeed = succeed
        self.enabled = enabled
        self.sent = []

    def send(self, to, subject, html_body):
        self.sent.append({"to": to, "subject": subject, "html": html_body})
        if self.succeed:
            return EmailResult(success=True, message_id="msg-1")
        return EmailResult(success=False, error="smtp exploded")


@pytest.fixture
def store(tmp_path):
    s = Store(f"sqlite:///{tmp_path / 'market_sensor.db'}", snapshot_history=10,
              drift_history=50, report_history=100)
    yield s
    s.close()


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def email_service():
    return FakeEmailService()
