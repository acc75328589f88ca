from flask_jwt_extended import create_access_token

from helpers import client_signals, device_headers

from pollguard.models.audit_log import AuditLog
from pollguard.models.device_binding import DeviceBinding
from pollguard.models.fingerprint_block import FingerprintBlock
from pollguard.models.poll import Poll
from pollguard.models.vote import Vote


def cast(client, option=2, width=1920, ip="203.0.113.20"):
    return client.post(
        "/api/polls/1/vote",
        json={"option": option, "clientSignals": client_signals(screenWidth=width)},
        headers=device_headers(ip=ip),
    )


def reset(client, headers, token, reason):
    return client.post("/api/admin/devices/reset", json={"token": token, "reason": reason}, headers=headers)


class TestAdminAuth:
    def test_login_with_wrong_key(self, app, client):
        resp = client.post("/api/auth/admin/login", json={"adminKey": "nope"})
        assert resp.status_code == 401

    def test_login_requires_key(self, app, client):
        assert client.post("/api/auth/admin/login", json={}).status_code == 400

    def test_login_when_key_not_configured(self, app, client):
        app.config["ADMIN_KEY"] = None
        resp = client.post("/api/auth/admin/login", json={"adminKey": "anything"})
        assert resp.status_code == 500

    def test_status(self, app, client, admin_headers):
        assert client.get("/api/auth/admin/status").get_json() == {"isAuthenticated": False}
        assert client.get("/api/auth/admin/status", headers=admin_headers).get_json() == {"isAuthenticated": True}

    def test_admin_routes_require_token(self, poll, client):
        assert client.get("/api/admin/polls/1/results").status_code == 401

    def test_admin_routes_reject_other_roles(self, poll, client):
        token = create_access_token(identity="someone", additional_claims={"role": "VOTER"})

        resp = client.get("/api/admin/polls/1/results", headers={"Authorization": f"Bearer {token}"})

        assert resp.status_code == 403

    def test_logout_revokes_token(self, poll, client, admin_headers):
        assert client.post("/api/auth/admin/logout", headers=admin_headers).status_code == 200
        assert client.get("/api/admin/polls/1/results", headers=admin_headers).status_code == 401


class TestPollStateAdmin:
    def test_close_and_reopen(self, poll, client, admin_headers):
        resp = client.post("/api/admin/polls/1/state", json={"isOpen": False}, headers=admin_headers)
        assert resp.status_code == 200
        assert client.get("/api/polls/1").get_json()["isOpen"] is False
        assert cast(client).status_code == 403

        client.post("/api/admin/polls/1/state", json={"isOpen": True}, headers=admin_headers)
        assert cast(client).status_code == 201

    def test_upsert_creates_poll(self, db, app, client, admin_headers):
        resp = client.post(
            "/api/admin/polls/3/state",
            json={"isOpen": True, "optionCount": 4, "title": "Lunch"},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.get_json()["created"] is True
        poll = db.session.get(Poll, 3)
        assert poll.option_count == 4
        assert poll.title == "Lunch"

    def test_invalid_body(self, poll, client, admin_headers):
        resp = client.post("/api/admin/polls/1/state", json={"isOpen": "maybe"}, headers=admin_headers)
        assert resp.status_code == 400


class TestResults:
    def test_counts_per_option(self, poll, new_client, client, admin_headers):
        cast(new_client(), option=3, width=1)
        cast(new_client(), option=3, width=2)
        cast(new_client(), option=6, width=3)

        body = client.get("/api/admin/polls/1/results", headers=admin_headers).get_json()

        assert body["counts"] == [0, 0, 2, 0, 0, 1]
        assert body["total"] == 3

    def test_unknown_poll(self, app, client, admin_headers):
        assert client.get("/api/admin/polls/9/results", headers=admin_headers).status_code == 404


class TestDevices:
    def test_devices_view(self, poll, client, new_client, admin_headers):
        cast(new_client())
        new_client().get("/api/polls/1/device/bootstrap")

        body = client.get("/api/admin/polls/1/devices", headers=admin_headers).get_json()

        assert body["stats"]["totalDevices"] == 2
        assert body["stats"]["votedDevices"] == 1
        assert body["stats"]["fingerprintBlocks"] == 1
        assert {"count", "remaining", "resetAt"} <= set(body["stats"]["rateLimitStatus"])
        assert all(d["dbt"].endswith("...") and len(d["dbt"]) == 11 for d in body["devices"])
        assert sum(h["count"] for h in body["votesByHour"]) == 1

    def test_rate_limit_status_for_identity(self, poll, client, new_client, admin_headers):
        for i in range(3):
            cast(new_client(), width=i, ip="192.0.2.9")

        body = client.get(
            "/api/admin/rate-limit", query_string={"identity": "192.0.2.9"}, headers=admin_headers
        ).get_json()

        assert body["identity"] == "192.0.2.9"
        assert body["count"] == 3
        assert body["remaining"] == 7


class TestDeviceResetApi:
    def test_not_found(self, poll, client, admin_headers):
        resp = client.post("/api/admin/devices/reset", json={"token": "missing"}, headers=admin_headers)

        assert resp.status_code == 404
        assert resp.get_json()["error"]["code"] == "DEVICE_NOT_FOUND"

    def test_token_required(self, poll, client, admin_headers):
        assert client.post("/api/admin/devices/reset", json={}, headers=admin_headers).status_code == 400

    def test_retain_vote_keeps_tally(self, poll, client, new_client, admin_headers):
        voter = new_client()
        token = cast(voter).get_json()["token"]

        resp = client.post(
            "/api/admin/devices/reset",
            json={"token": token, "reason": "keep history", "removeVote": False},
            headers=admin_headers,
        )

        assert resp.status_code == 200
        assert resp.get_json()["voteDetached"] is True
        assert Vote.query.count() == 1
        assert cast(voter, option=4).status_code == 201
        assert Vote.query.count() == 2

    def test_reset_is_audited(self, poll, client, new_client, admin_headers):
        token = cast(new_client()).get_json()["token"]

        client.post("/api/admin/devices/reset", json={"token": token, "reason": "support ticket"}, headers=admin_headers)

        log = AuditLog.query.filter_by(action="DEVICE_RESET").one()
        assert log.details["reason"] == "support ticket"
        assert log.actor == "admin"
        assert log.actor_role == "SYSTEM_ADMIN"


class TestBulkClearApi:
    def test_soft_clear(self, poll, client, new_client, admin_headers):
        voter = new_client()
        cast(voter)

        resp = client.post("/api/admin/polls/1/clear-votes", headers=admin_headers)

        assert resp.get_json() == {"success": True, "resetType": "soft", "deletedCount": 1}
        assert Vote.query.count() == 0
        assert DeviceBinding.query.count() == 1
        assert FingerprintBlock.query.count() == 1
        # Bindings and blocks survive a soft clear
        assert cast(voter).status_code == 409

    def test_hard_reset_requires_confirmation(self, poll, client, admin_headers):
        cast(client)

        resp = client.post("/api/admin/polls/1/hard-reset", json={"confirm": "yes"}, headers=admin_headers)

        assert resp.status_code == 400
        assert Vote.query.count() == 1

    def test_hard_reset_reopens_poll(self, db, poll, client, admin_headers):
        poll.is_open = False
        db.session.commit()

        resp = client.post("/api/admin/polls/1/hard-reset", json={"confirm": "HARD_RESET"}, headers=admin_headers)

        assert resp.status_code == 200
        assert resp.get_json()["resetType"] == "hard"
        assert client.get("/api/polls/1").get_json()["isOpen"] is True


class TestAuditLogs:
    def test_filter_by_action(self, poll, client, new_client, admin_headers):
        cast(new_client())

        body = client.get(
            "/api/admin/audit-logs", query_string={"action": "VOTE_SUBMITTED"}, headers=admin_headers
        ).get_json()

        assert body["total"] == 1
        assert body["logs"][0]["entityType"] == "VOTE"
        assert body["logs"][0]["details"]["option"] == 2

    def test_reset_history_of_one_device(self, poll, client, new_client, admin_headers):
        token = cast(new_client(), width=1).get_json()["token"]
        other = cast(new_client(), width=2).get_json()["token"]
        binding_id = reset(client, admin_headers, token, "first").get_json()["bindingId"]
        reset(client, admin_headers, other, "unrelated")
        reset(client, admin_headers, token, "second")

        body = client.get(
            "/api/admin/audit-logs", query_string={"entityId": binding_id}, headers=admin_headers
        ).get_json()

        assert body["total"] == 2
        assert sorted(log["details"]["reason"] for log in body["logs"]) == ["first", "second"]
        assert {log["actorRole"] for log in body["logs"]} == {"SYSTEM_ADMIN"}

    def test_time_window(self, app, client, admin_headers):
        before = client.get(
            "/api/admin/audit-logs", query_string={"to": "2000-01-01T00:00:00Z"}, headers=admin_headers
        ).get_json()
        after = client.get(
            "/api/admin/audit-logs", query_string={"from": "2000-01-01T00:00:00"}, headers=admin_headers
        ).get_json()

        assert before["total"] == 0
        assert after["total"] >= 1

    def test_bad_query(self, app, client, admin_headers):
        for params in ({"limit": "x"}, {"limit": 500}, {"offset": -1}, {"from": "yesterday"}):
            resp = client.get("/api/admin/audit-logs", query_string=params, headers=admin_headers)
            assert resp.status_code == 400, params
            assert resp.get_json()["error"]["code"] == "VALIDATION_ERROR"
