"""Unit tests for the Invitation entity state machine."""

from datetime import datetime, timedelta
from uuid import uuid4

import pytest

from domain.entities.invitation import Invitation, InvitationStatus
from domain.entities.workspace import WorkspaceRole

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _invitation(**overrides: object) -> Invitation:
    fields: dict[str, object] = {
        "workspace_id": uuid4(),
        "email": "invitee@example.com",
        "role": WorkspaceRole.MEMBER,
        "token_hash": "a" * 64,
        "invited_by": uuid4(),
        "created_at": NOW,
        "expires_at": NOW + timedelta(days=7),
    }
    fields.update(overrides)
    return Invitation(**fields)  # type: ignore[arg-type]


class TestEffectiveStatus:
    def test_pending_before_expiry(self) -> None:
        assert _invitation().effective_status(NOW) == InvitationStatus.PENDING

    def test_lapsed_pending_reads_as_expired(self) -> None:
        inv = _invitation(expires_at=NOW)

        assert inv.effective_status(NOW) == InvitationStatus.EXPIRED
        assert inv.status == InvitationStatus.PENDING

    def test_terminal_status_is_reported_as_stored(self) -> None:
        inv = _invitation(status=InvitationStatus.ACCEPTED, expires_at=NOW - timedelta(days=1))

        assert inv.effective_status(NOW) == InvitationStatus.ACCEPTED


class TestTransitions:
    def test_accepted_stamps_time(self) -> None:
        accepted = _invitation().accepted(NOW)

        assert accepted.status == InvitationStatus.ACCEPTED
        assert accepted.accepted_at == NOW

    def test_cancelled(self) -> None:
        assert _invitation().cancelled(NOW).status == InvitationStatus.CANCELLED

    @pytest.mark.parametrize(
        "status",
        [InvitationStatus.ACCEPTED, InvitationStatus.CANCELLED, InvitationStatus.EXPIRED],
    )
    def test_terminal_states_cannot_transition(self, status: InvitationStatus) -> None:
        inv = _invitation(status=status)

        with pytest.raises(ValueError):
            inv.accepted(NOW)
        with pytest.raises(ValueError):
            inv.cancelled(NOW)

    def test_lapsed_invitation_cannot_be_accepted(self) -> None:
        with pytest.raises(ValueError):
            _invitation(expires_at=NOW).accepted(NOW)
