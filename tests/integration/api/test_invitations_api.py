"""Integration tests for the Invitation API."""

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from httpx import AsyncClient

from tests.conftest import SignedInUser

SignUp = Callable[..., Awaitable[SignedInUser]]


async def _create_workspace(client: AsyncClient, owner: SignedInUser) -> str:
    response = await client.post(
        "/api/v1/workspaces",
        json={"name": f"Invites {uuid4().hex[:8]}"},
        headers=owner.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()["data"]["id"]  # type: ignore[no-any-return]


async def _invite(
    client: AsyncClient,
    actor: SignedInUser,
    workspace_id: str,
    email: str,
    role: str = "member",
) -> dict[str, Any]:
    response = await client.post(
        f"/api/v1/workspaces/{workspace_id}/invitations",
        json={"email": email, "role": role},
        headers=actor.headers,
    )
    assert response.status_code == 201, response.text
    return response.json()  # type: ignore[no-any-return]


class TestCreateInvitation:
    async def test_admin_invites_by_email(self, client: AsyncClient, sign_up: SignUp) -> None:
        owner = await sign_up()
        workspace_id = await _create_workspace(client, owner)
        email = f"Invitee-{uuid4().hex[:8]}@Example.com"

        body = await _invite(client, owner, workspace_id, email, role="guest")

        assert body["token"]
        data = body["data"]
        assert data["email"] == email.lower()
        assert data["role"] == "guest"
        assert data["status"] == "pending"
        assert data["invited_by"] == str(owner.id)
        assert "token_hash" not in data

    async def test_member_cannot_invite(self, client: AsyncClient, sign_up: SignUp) -> None:
        owner = await sign_up()
        member = await sign_up()
        workspace_id = await _create_workspace(client, owner)
        await client.post(
            f"/api/v1/workspaces/{workspace_id}/members",
            json={"user_id": str(member.id), "role": "member"},
            headers=owner.headers,
        )

        response = await client.post(
            f"/api/v1/workspaces/{workspace_id}/invitations",
            json={"email": "someone@example.com"},
            headers=member.headers,
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "INSUFFICIENT_PERMISSIONS"

    async def test_duplicate_pending_invitation(
        self, client: AsyncClient, test_user: SignedInUser
    ) -> None:
        workspace_id = await _create_workspace(client, test_user)
        email = f"dup-{uuid4().hex[:8]}@example.com"
        await _invite(client, test_user, workspace_id, email)

        response = await client.post(
            f"/api/v1/workspaces/{workspace_id}/invitations",
            json={"email": email.upper()},
            headers=test_user.headers,
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "DUPLICATE_INVITATION"

    async def test_existing_member_cannot_be_invited(
        self, client: AsyncClient, test_user: SignedInUser
    ) -> None:
        workspace_id = await _create_workspace(client, test_user)

        response = await client.post(
            f"/api/v1/workspaces/{workspace_id}/invitations",
            json={"email": test_user.email},
            headers=test_user.headers,
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "ALREADY_A_MEMBER"

    async def test_unknown_workspace(self, client: AsyncClient, test_user: SignedInUser) -> None:
        response = await client.post(
            f"/api/v1/workspaces/{uuid4()}/invitations",
            json={"email": "someone@example.com"},
            headers=test_user.headers,
        )

        assert response.status_code == 404


class TestAcceptInvitation:
    async def test_accept_creates_membership(self, client: AsyncClient, sign_up: SignUp) -> None:
        owner = await sign_up()
        invitee = await sign_up()
        workspace_id = await _create_workspace(client, owner)
        created = await _invite(client, owner, workspace_id, invitee.email, role="admin")

        response = await client.post(
            "/api/v1/invitations/accept",
            json={"token": created["token"]},
            headers=invitee.headers,
        )

        assert response.status_code == 200
        body = response.json()
        assert body["workspace_id"] == workspace_id
        assert body["role"] == "admin"
        members = await client.get(
            f"/api/v1/workspaces/{workspace_id}/members", headers=invitee.headers
        )
        assert members.status_code == 200
        roles = {m["user_id"]: m["role"] for m in members.json()["data"]}
        assert roles[str(invitee.id)] == "admin"

    async def test_accept_twice_conflicts(self, client: AsyncClient, sign_up: SignUp) -> None:
        owner = await sign_up()
        invitee = await sign_up()
        workspace_id = await _create_workspace(client, owner)
        created = await _invite(client, owner, workspace_id, invitee.email)
        payload = {"token": created["token"]}
        await client.post("/api/v1/invitations/accept", json=payload, headers=invitee.headers)

        response = await client.post(
            "/api/v1/invitations/accept", json=payload, headers=invitee.headers
        )

        assert response.status_code == 409
        assert response.json()["error_code"] == "INVITATION_ALREADY_ACCEPTED"

    async def test_email_mismatch(self, client: AsyncClient, sign_up: SignUp) -> None:
        owner = await sign_up()
        intended = f"intended-{uuid4().hex[:8]}@example.com"
        interloper = await sign_up()
        workspace_id = await _create_workspace(client, owner)
        created = await _invite(client, owner, workspace_id, intended)

        response = await client.post(
            "/api/v1/invitations/accept",
            json={"token": created["token"]},
            headers=interloper.headers,
        )

        assert response.status_code == 403
        assert response.json()["error_code"] == "INVITATION_EMAIL_MISMATCH"

    async def test_unknown_token(self, client: AsyncClient, test_user: SignedInUser) -> None:
        response = await client.post(
            "/api/v1/invitations/accept",
            json={"token": "not-a-token"},
            headers=test_user.headers,
        )

        assert response.status_code == 404
        assert response.json()["error_code"] == "INVITATION_NOT_FOUND"

    async def test_requires_authentication(self, client: AsyncClient) -> None:
        response = await client.post("/api/v1/invitations/accept", json={"token": "x"})

        assert response.status_code == 401


class TestCancelInvitation:
    async def test_cancelled_invitation_cannot_be_accepted(
        self, client: AsyncClient, sign_up: SignUp
    ) -> None:
        owner = await sign_up()
        invitee = await sign_up()
        workspace_id = await _create_workspace(client, owner)
        created = await _invite(client, owner, workspace_id, invitee.email)

        response = await client.delete(
            f"/api/v1/workspaces/{workspace_id}/invitations/{created['data']['id']}",
            headers=owner.headers,
        )

        assert response.status_code == 204
        accepted = await client.post(
            "/api/v1/invitations/accept",
            json={"token": created["token"]},
            headers=invitee.headers,
        )
        assert accepted.status_code == 404

    async def test_cancel_frees_the_slot(
        self, client: AsyncClient, test_user: SignedInUser
    ) -> None:
        workspace_id = await _create_workspace(client, test_user)
        email = f"again-{uuid4().hex[:8]}@example.com"
        created = await _invite(client, test_user, workspace_id, email)
        await client.delete(
            f"/api/v1/workspaces/{workspace_id}/invitations/{created['data']['id']}",
            headers=test_user.headers,
        )

        again = await _invite(client, test_user, workspace_id, email)

        assert again["data"]["id"] != created["data"]["id"]

    async def test_cannot_cancel_accepted(self, client: AsyncClient, sign_up: SignUp) -> None:
        owner = await sign_up()
        invitee = await sign_up()
        workspace_id = await _create_workspace(client, owner)
        created = await _invite(client, owner, workspace_id, invitee.email)
        await client.post(
            "/api/v1/invitations/accept",
            json={"token": created["token"]},
            headers=invitee.headers,
        )

        response = await client.delete(
            f"/api/v1/workspaces/{workspace_id}/invitations/{created['data']['id']}",
            headers=owner.headers,
        )

        assert response.status_code == 409


class TestListInvitations:
    async def test_workspace_listing(self, client: AsyncClient, test_user: SignedInUser) -> None:
        workspace_id = await _create_workspace(client, test_user)
        await _invite(client, test_user, workspace_id, f"a-{uuid4().hex[:8]}@example.com")
        await _invite(client, test_user, workspace_id, f"b-{uuid4().hex[:8]}@example.com")

        response = await client.get(
            f"/api/v1/workspaces/{workspace_id}/invitations", headers=test_user.headers
        )

        assert response.status_code == 200
        assert response.json()["meta"]["total"] == 2

    async def test_pending_for_caller(self, client: AsyncClient, sign_up: SignUp) -> None:
        owner = await sign_up()
        invitee = await sign_up()
        first = await _create_workspace(client, owner)
        second = await _create_workspace(client, owner)
        await _invite(client, owner, first, invitee.email)
        await _invite(client, owner, second, invitee.email)

        response = await client.get("/api/v1/invitations/pending", headers=invitee.headers)

        assert response.status_code == 200
        assert {inv["workspace_id"] for inv in response.json()["data"]} == {first, second}
