"""
HTTP-level tests for the routers.

Collaborators are swapped through app.dependency_overrides; the lifespan
(database pool, chain client) is never started.
"""

import pytest
from decimal import Decimal
from unittest.mock import AsyncMock

from fastapi.testclient import TestClient

from api.dependencies import (
    get_neynar_client,
    get_reward_manager_repository,
    get_stats_reader,
    get_timeline_repository,
    get_timeline_service,
)
from main import app
from models.domain.engagement import AllocationEntry, PayoutShare, PayoutShareTable
from models.domain.timeline import Creator, Timeline, TimelineTemplate
from services.errors import (
    InvalidAllocationError,
    NeynarAPIError,
    NoCastsFoundError,
    PayoutInitializationError,
    RewardManagerUnavailableError,
    TimelinePersistenceError,
)
from services.timeline_service import TimelineCreationResult

from conftest import CREATOR_ADDRESS

REWARD_MANAGER = "0x" + "ab" * 20
SUPPORTER_ADDRESS = "0x" + "1" * 40

CREATE_BODY = {
    "name": "Onchain Summer",
    "template": "pulse-thread",
    "creator": {"fid": 42, "username": "alice"},
    "supporter_allocation": "20",
    "cast_hashes": ["0xc1"],
    "author_address": CREATOR_ADDRESS,
}


def make_timeline(**overrides):
    fields = dict(
        id="tl_abc12345",
        name="Onchain Summer",
        template=TimelineTemplate.PULSE_THREAD,
        creator=Creator(fid="42", username="alice"),
        supporter_allocation=20.0,
        cast_hashes=["0xc1"],
        reward_manager=REWARD_MANAGER,
        total_supporters=1,
    )
    fields.update(overrides)
    return Timeline(**fields)


@pytest.fixture
def service():
    return AsyncMock()


@pytest.fixture
def timelines():
    return AsyncMock()


@pytest.fixture
def reward_managers():
    return AsyncMock()


@pytest.fixture
def neynar():
    return AsyncMock()


@pytest.fixture
def stats_reader():
    return AsyncMock()


@pytest.fixture
def client(service, timelines, reward_managers, neynar, stats_reader):
    app.dependency_overrides[get_timeline_service] = lambda: service
    app.dependency_overrides[get_timeline_repository] = lambda: timelines
    app.dependency_overrides[get_reward_manager_repository] = lambda: reward_managers
    app.dependency_overrides[get_neynar_client] = lambda: neynar
    app.dependency_overrides[get_stats_reader] = lambda: stats_reader
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_unconfigured_service_is_unavailable():
    app.dependency_overrides.clear()
    response = TestClient(app).post("/api/timelines", json=CREATE_BODY)
    assert response.status_code == 503


class TestCalculateAllocations:

    def test_preview(self, client, service):
        service.preview_allocations.return_value = [AllocationEntry("101", 5, 0, 5, 20.0)]

        response = client.post(
            "/api/timelines/calculate-allocations",
            json={"cast_hashes": ["0xc1"], "supporter_allocation": 20},
        )

        assert response.status_code == 200
        assert response.json() == [{
            "fid": "101", "likes": 5, "recasts": 0, "total_score": 5,
            "allocation": 20.0, "eth_address": None, "basis_points": None,
        }]

    def test_invalid_cap(self, client, service):
        service.preview_allocations.side_effect = InvalidAllocationError("Supporter allocation must be between 0 and 100")

        response = client.post(
            "/api/timelines/calculate-allocations",
            json={"cast_hashes": ["0xc1"], "supporter_allocation": 150},
        )

        assert response.status_code == 400
        assert response.json()["detail"].startswith("Failed to calculate allocations")

    def test_requires_casts(self, client):
        response = client.post(
            "/api/timelines/calculate-allocations",
            json={"cast_hashes": [], "supporter_allocation": 20},
        )
        assert response.status_code == 422


class TestCreateTimeline:

    def test_created(self, client, service):
        supporter = AllocationEntry("101", 5, 0, 5, 20.0, SUPPORTER_ADDRESS, 2000)
        service.create_timeline.return_value = TimelineCreationResult(
            timeline=make_timeline(),
            supporters=[supporter],
            payout_table=PayoutShareTable(shares=(
                PayoutShare(CREATOR_ADDRESS, 8000),
                PayoutShare(SUPPORTER_ADDRESS, 2000),
            )),
            tx_hash="0xfeed",
        )

        response = client.post("/api/timelines", json=CREATE_BODY)

        assert response.status_code == 201
        body = response.json()
        assert body["timeline_id"] == "tl_abc12345"
        assert body["reward_manager"] == REWARD_MANAGER
        assert body["payout"] == [
            {"address": CREATOR_ADDRESS, "basis_points": 8000},
            {"address": SUPPORTER_ADDRESS, "basis_points": 2000},
        ]

        draft = service.create_timeline.call_args.args[0]
        assert draft.creator.fid == "42"
        assert draft.template == TimelineTemplate.PULSE_THREAD

    @pytest.mark.parametrize("error,status_code", [
        (InvalidAllocationError("bad cap"), 400),
        (NoCastsFoundError("nothing"), 400),
        (RewardManagerUnavailableError("pool empty"), 503),
        (PayoutInitializationError("reverted"), 502),
        (NeynarAPIError("search down"), 502),
        (TimelinePersistenceError("db gone"), 500),
    ])
    def test_error_mapping(self, client, service, error, status_code):
        service.create_timeline.side_effect = error

        response = client.post("/api/timelines", json=CREATE_BODY)

        assert response.status_code == status_code
        assert str(error) in response.json()["detail"]

    def test_unknown_template(self, client):
        response = client.post("/api/timelines", json={**CREATE_BODY, "template": "carousel"})
        assert response.status_code == 422


class TestReadTimelines:

    def test_get_timeline_with_supporters(self, client, timelines):
        timelines.get_by_id.return_value = make_timeline()
        timelines.get_supporters.return_value = [AllocationEntry("202", 0, 1, 2, 20.0)]

        response = client.get("/api/timelines/tl_abc12345")

        assert response.status_code == 200
        body = response.json()
        assert body["creator"]["fid"] == "42"
        assert body["supporters"][0]["eth_address"] is None

    def test_get_missing_timeline(self, client, timelines):
        timelines.get_by_id.return_value = None
        assert client.get("/api/timelines/tl_00000000").status_code == 404

    def test_list(self, client, timelines):
        timelines.list_recent.return_value = [make_timeline()]

        response = client.get("/api/timelines?limit=5")

        assert response.status_code == 200
        assert response.json()[0]["supporters"] is None
        timelines.list_recent.assert_awaited_once_with(5)

    def test_casts(self, client, timelines, neynar):
        timelines.get_by_id.return_value = make_timeline()
        neynar.fetch_casts.return_value = [{"hash": "0xc1", "text": "gm"}]

        response = client.get("/api/timelines/tl_abc12345/casts")

        assert response.json() == {"casts": [{"hash": "0xc1", "text": "gm"}]}

    def test_casts_upstream_failure(self, client, timelines, neynar):
        timelines.get_by_id.return_value = make_timeline()
        neynar.fetch_casts.side_effect = NeynarAPIError("down", status_code=500)

        assert client.get("/api/timelines/tl_abc12345/casts").status_code == 502


class TestCoinAddress:

    def test_records_coin(self, client, timelines):
        timelines.update_coin_address.return_value = True

        response = client.post("/api/timelines/tl_abc12345/coin", json={"coin_address": " 0xcoin "})

        assert response.json() == {"success": True, "timeline_id": "tl_abc12345", "coin_address": "0xcoin"}
        timelines.update_coin_address.assert_awaited_once_with("tl_abc12345", "0xcoin")

    def test_blank_coin(self, client, timelines):
        response = client.post("/api/timelines/tl_abc12345/coin", json={"coin_address": "  "})

        assert response.status_code == 400
        timelines.update_coin_address.assert_not_called()

    def test_unknown_timeline(self, client, timelines):
        timelines.update_coin_address.return_value = False

        response = client.post("/api/timelines/tl_00000000/coin", json={"coin_address": "0xcoin"})

        assert response.status_code == 404


class TestUserStats:

    def test_stats(self, client, stats_reader):
        stats_reader.supporter_share_percent.return_value = Decimal("12.50")
        stats_reader.user_earnings.return_value = Decimal("0.25")
        stats_reader.coin_balance.return_value = Decimal("1000")

        response = client.get(
            "/api/timelines/user-stats",
            params={"user_address": "0xu", "reward_manager": "0xr", "coin_address": "0xc"},
        )

        assert response.json() == {"supporter_allocation": "12.5%", "earnings": 0.25, "balance": 1000.0}

    def test_missing_params(self, client):
        response = client.get("/api/timelines/user-stats", params={"user_address": "0xu"})
        assert response.status_code == 400

    def test_chain_failure(self, client, stats_reader):
        stats_reader.supporter_share_percent.side_effect = ConnectionError("rpc down")

        response = client.get(
            "/api/timelines/user-stats",
            params={"user_address": "0xu", "reward_manager": "0xr", "coin_address": "0xc"},
        )

        assert response.status_code == 502


class TestUserProfile:

    def test_profile(self, client, neynar):
        neynar.fetch_user.return_value = {"fid": 42, "username": "alice"}

        response = client.get("/api/user-profile", params={"fid": "42"})

        assert response.json() == {"user": {"fid": 42, "username": "alice"}}

    def test_missing_fid(self, client):
        assert client.get("/api/user-profile").status_code == 400

    def test_unknown_fid(self, client, neynar):
        neynar.fetch_user.return_value = None
        assert client.get("/api/user-profile", params={"fid": "999999999"}).status_code == 404

    def test_upstream_status_passed_through(self, client, neynar):
        neynar.fetch_user.side_effect = NeynarAPIError("rate limited", status_code=429)
        assert client.get("/api/user-profile", params={"fid": "42"}).status_code == 429


class TestRewardManagers:

    def test_register(self, client, reward_managers):
        reward_managers.register.side_effect = [True, False]
        reward_managers.count_available.return_value = 4

        response = client.post("/api/reward-managers", json={"addresses": [REWARD_MANAGER, SUPPORTER_ADDRESS]})

        assert response.status_code == 201
        body = response.json()
        assert len(body["registered"]) == 1
        assert body["skipped"] == 1
        assert body["available"] == 4

    def test_rejects_invalid_address(self, client, reward_managers):
        response = client.post("/api/reward-managers", json={"addresses": ["not-an-address"]})

        assert response.status_code == 400
        reward_managers.register.assert_not_called()
