import httpx
import pytest

from fake_backend import GOOD_UPSTREAM_TOKEN, OTHER_UPSTREAM_TOKEN, BackendState, open_desk, signed_in
from numberdesk.app import NumberDesk
from numberdesk.config import Settings
from numberdesk.profiles.models import LoginStatus, Profile, ProfileOutcomeStatus, elide_token


@pytest.mark.asyncio
async def test_create_with_working_token_logs_in(tmp_path):
    async with open_desk(tmp_path) as desk:
        await signed_in(desk)
        outcome = await desk.profiles.create("Main", GOOD_UPSTREAM_TOKEN)

        assert outcome.status == ProfileOutcomeStatus.LOGGED_IN
        assert outcome.message == "Profile created and logged in successfully!"
        assert desk.notifier.messages == ["Profile created and logged in successfully!"]
        assert outcome.profile.is_logged_in is True
        assert outcome.profile.login_status == LoginStatus.SUCCESS
        assert outcome.profile.identity.username == "user-6925"


@pytest.mark.asyncio
async def test_create_with_malformed_token_is_saved_but_not_logged_in(tmp_path):
    backend = BackendState()
    async with open_desk(tmp_path, backend) as desk:
        await signed_in(desk)
        outcome = await desk.profiles.create("Broken", "  not-a-real-token ")

        assert outcome.saved is True
        assert outcome.status == ProfileOutcomeStatus.LOGIN_FAILED
        assert outcome.message == "Profile created but login failed: Invalid auth token"
        assert desk.notifier.errors == []
        assert outcome.profile.login_status == LoginStatus.FAILED
        assert outcome.profile.is_logged_in is False
        assert outcome.profile.identity is None

    assert backend.profiles[0]["auth_token"] == "  not-a-real-token "


@pytest.mark.asyncio
async def test_create_with_empty_fields_issues_no_request(tmp_path):
    backend = BackendState()
    async with open_desk(tmp_path, backend) as desk:
        await signed_in(desk)
        before = len(backend.requests)

        outcome = await desk.profiles.create("", GOOD_UPSTREAM_TOKEN)
        assert outcome.status == ProfileOutcomeStatus.FAILED
        outcome = await desk.profiles.create("Name", "   ")
        assert outcome.status == ProfileOutcomeStatus.FAILED

        assert len(backend.requests) == before
        assert desk.notifier.errors == ["Please fill in all fields", "Please fill in all fields"]


@pytest.mark.asyncio
async def test_duplicate_name_reports_backend_reason_once(tmp_path):
    async with open_desk(tmp_path) as desk:
        await signed_in(desk)
        await desk.profiles.create("Main", GOOD_UPSTREAM_TOKEN)
        desk.notifier.clear()

        outcome = await desk.profiles.create("Main", OTHER_UPSTREAM_TOKEN)

        assert outcome.saved is False
        assert outcome.message == "Failed to create profile: Profile 'Main' already exists"
        assert desk.notifier.errors == ["Profile 'Main' already exists"]


@pytest.mark.asyncio
async def test_activate_moves_the_active_flag(tmp_path):
    async with open_desk(tmp_path) as desk:
        await signed_in(desk)
        a = (await desk.profiles.create("A", GOOD_UPSTREAM_TOKEN)).profile
        b = (await desk.profiles.create("B", OTHER_UPSTREAM_TOKEN)).profile
        assert a.is_active is True
        assert b.is_active is False

        outcome = await desk.profiles.activate(b.id)

        assert outcome.ok
        assert outcome.data.id == b.id
        assert [p.id for p in desk.profiles.profiles if p.is_active] == [b.id]
        assert desk.profiles.get(a.id).is_active is False
        assert (await desk.profiles.fetch_active()).id == b.id


@pytest.mark.asyncio
async def test_delete_then_list(tmp_path):
    async with open_desk(tmp_path) as desk:
        await signed_in(desk)
        await desk.profiles.create("A", GOOD_UPSTREAM_TOKEN)
        b = (await desk.profiles.create("B", OTHER_UPSTREAM_TOKEN)).profile

        outcome = await desk.profiles.remove(b.id)

        assert outcome.ok
        assert [p.name for p in await desk.profiles.list()] == ["A"]


@pytest.mark.asyncio
async def test_delete_refused_by_backend(tmp_path):
    async with open_desk(tmp_path) as desk:
        await signed_in(desk)
        a = (await desk.profiles.create("A", GOOD_UPSTREAM_TOKEN)).profile
        desk.notifier.clear()

        outcome = await desk.profiles.remove(a.id)

        assert outcome.ok is False
        assert outcome.message == "Failed to delete profile: Cannot delete the active profile"
        assert desk.notifier.errors == ["Cannot delete the active profile"]
        assert [p.id for p in desk.profiles.profiles] == [a.id]


@pytest.mark.asyncio
async def test_update_name_only_skips_login(tmp_path):
    backend = BackendState()
    async with open_desk(tmp_path, backend) as desk:
        await signed_in(desk)
        a = (await desk.profiles.create("A", GOOD_UPSTREAM_TOKEN)).profile

        outcome = await desk.profiles.update(a.id, name="Renamed")

        assert outcome.status == ProfileOutcomeStatus.SAVED
        assert outcome.message == "Profile updated successfully"
        assert desk.profiles.get(a.id).name == "Renamed"


@pytest.mark.asyncio
async def test_update_token_reports_login_result(tmp_path):
    async with open_desk(tmp_path) as desk:
        await signed_in(desk)
        a = (await desk.profiles.create("A", GOOD_UPSTREAM_TOKEN)).profile

        outcome = await desk.profiles.update(a.id, auth_token="garbage")

        assert outcome.status == ProfileOutcomeStatus.LOGIN_FAILED
        assert outcome.message == "Profile updated but login failed: Invalid auth token"
        assert desk.profiles.get(a.id).is_logged_in is False


@pytest.mark.asyncio
async def test_update_with_nothing_to_change(tmp_path):
    backend = BackendState()
    async with open_desk(tmp_path, backend) as desk:
        await signed_in(desk)
        before = len(backend.requests)
        outcome = await desk.profiles.update(1)
        assert outcome.saved is False
        assert len(backend.requests) == before


@pytest.mark.asyncio
async def test_retry_login_failure_is_notified(tmp_path):
    async with open_desk(tmp_path) as desk:
        await signed_in(desk)
        p = (await desk.profiles.create("Bad", "garbage")).profile
        desk.notifier.clear()

        outcome = await desk.profiles.login(p.id)

        assert outcome.ok is False
        assert desk.notifier.errors == ["Invalid auth token"]
        assert desk.profiles.get(p.id).login_status == LoginStatus.FAILED


@pytest.mark.asyncio
async def test_retry_login_success(tmp_path):
    backend = BackendState()
    async with open_desk(tmp_path, backend) as desk:
        await signed_in(desk)
        p = (await desk.profiles.create("Later", "garbage")).profile
        backend.profiles[0]["auth_token"] = GOOD_UPSTREAM_TOKEN
        desk.notifier.clear()

        outcome = await desk.profiles.login(p.id)

        assert outcome.ok is True
        assert desk.notifier.messages == ["Login successful!"]
        assert outcome.data.is_logged_in is True


@pytest.mark.asyncio
async def test_malformed_profile_rows_are_skipped(tmp_path):
    backend = BackendState()
    async with open_desk(tmp_path, backend) as desk:
        await signed_in(desk)
        backend.profiles.append({"id": 99, "name": "Broken", "auth_token": None, "is_active": False})

        outcome = await desk.profiles.create("A", GOOD_UPSTREAM_TOKEN)

        assert outcome.status == ProfileOutcomeStatus.LOGGED_IN
        assert [p.name for p in desk.profiles.profiles] == ["A"]
        assert [p.name for p in await desk.profiles.list()] == ["A"]


@pytest.mark.asyncio
async def test_non_list_profile_payload_reads_as_empty(tmp_path):
    def handler(request):
        return httpx.Response(200, json={"profiles": "unexpected"})

    desk = NumberDesk(
        Settings(api_url="http://backend.test", state_dir=str(tmp_path)),
        transport=httpx.MockTransport(handler),
    )
    try:
        assert await desk.profiles.refresh() is True
        assert desk.profiles.profiles == []
    finally:
        await desk.close()


def test_profile_normalizes_unknown_login_status():
    profile = Profile.model_validate(
        {"id": 1, "name": "x", "auth_token": "t", "login_status": "pending"}
    )
    assert profile.login_status == LoginStatus.UNATTEMPTED
    blank = Profile.model_validate({"id": 1, "name": "x", "auth_token": "t", "login_status": None})
    assert blank.login_status == LoginStatus.UNATTEMPTED


def test_token_display_elision():
    assert elide_token(GOOD_UPSTREAM_TOKEN) == "69252cf6-1417-4...9e37a3f9a0"
    assert elide_token("short-token") == "short-token"
    assert elide_token("x" * 30) == "x" * 30
