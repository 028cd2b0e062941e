import json

import pytest

from app.api.v1.endpoints import cron
from app.core.config import settings
from app.core.rbac import MODULES
from app.models.activity import ActivityLog, ActivityType, ScheduledTaskRun
from app.services.activity_logger import get_last_task_run, log_activity
from conftest import auth_headers


@pytest.fixture
def activities(db, admin, customer_care, marketing):
    log_activity(db, ActivityType.DATA_UPDATED, "Dados atualizados em Cobranca", module_id="cobranca")
    log_activity(db, ActivityType.DATA_UPDATED, "Dados atualizados em Marketing", module_id="marketing")
    log_activity(db, ActivityType.USER_LOGIN, "Usuario Atendimento fez login", user_id=customer_care.id)
    log_activity(db, ActivityType.USER_LOGIN, "Usuario Marketing fez login", user_id=marketing.id)
    log_activity(db, ActivityType.USER_CREATED, "Usuario criado", user_id=admin.id)


def _descriptions(resp):
    return {a["description"] for a in resp.json()["activities"]}


def test_view_all_sees_everything(client, investor, activities):
    resp = client.get("/api/v1/activities", headers=auth_headers(investor))
    assert resp.status_code == 200
    assert len(resp.json()["activities"]) == 5
    assert resp.json()["accessible_modules"] == list(MODULES)


def test_super_admin_sees_everything(client, admin, activities):
    resp = client.get("/api/v1/activities", headers=auth_headers(admin, permissions=[]))
    assert len(resp.json()["activities"]) == 5


def test_view_own_limited_to_reachable_modules_and_own(client, customer_care, activities):
    resp = client.get("/api/v1/activities", headers=auth_headers(customer_care))
    assert resp.status_code == 200
    assert _descriptions(resp) == {
        "Dados atualizados em Cobranca",
        "Usuario Atendimento fez login",
    }
    assert resp.json()["accessible_modules"] == ["customer-care", "cancelamentos", "cobranca"]


def test_view_own_without_modules_sees_only_own(client, marketing, activities):
    headers = auth_headers(marketing, permissions=["activity:view:own"])
    resp = client.get("/api/v1/activities", headers=headers)
    assert _descriptions(resp) == {"Usuario Marketing fez login"}


def test_activity_permission_required(client, marketing, activities):
    headers = auth_headers(marketing, permissions=["module:marketing:view"])
    resp = client.get("/api/v1/activities", headers=headers)
    assert resp.status_code == 403


def test_activity_filters(client, investor, activities):
    headers = auth_headers(investor)
    by_module = client.get("/api/v1/activities", params={"module": "marketing"}, headers=headers)
    assert _descriptions(by_module) == {"Dados atualizados em Marketing"}

    by_type = client.get("/api/v1/activities", params={"type": "USER_LOGIN"}, headers=headers)
    assert len(by_type.json()["activities"]) == 2

    limited = client.get("/api/v1/activities", params={"limit": 1}, headers=headers)
    assert len(limited.json()["activities"]) == 1


def test_activity_payload_shape(client, investor, activities):
    body = client.get(
        "/api/v1/activities", params={"type": "USER_CREATED"}, headers=auth_headers(investor)
    ).json()
    activity = body["activities"][0]
    assert activity["user"]["email"] == "adm@alumni.com"
    assert activity["metadata"] is None

    assert body["stats"]["total"] == 5
    by_type = {s["type"]: s["count"] for s in body["stats"]["by_type"]}
    assert by_type["USER_LOGIN"] == 2
    assert body["cron_jobs"] == {"refresh_data": None, "daily_check": None}


def test_modules_status_for_all_modules(client, investor, activities):
    body = client.get("/api/v1/activities", headers=auth_headers(investor)).json()
    statuses = {m["module_id"]: m for m in body["modules_status"]}
    assert list(statuses) == list(MODULES)

    assert statuses["cobranca"]["status"] == "updated"
    assert statuses["cobranca"]["name"] == "Cobranca"
    assert statuses["cobranca"]["last_activity_type"] == "DATA_UPDATED"
    assert statuses["cobranca"]["last_activity_date"] is not None

    assert statuses["vendas-b2c"]["status"] == "no_update"
    assert statuses["vendas-b2c"]["last_activity_type"] is None


def test_modules_status_limited_to_reachable_modules(client, customer_care, activities):
    body = client.get("/api/v1/activities", headers=auth_headers(customer_care)).json()
    assert [m["module_id"] for m in body["modules_status"]] == ["customer-care", "cancelamentos", "cobranca"]


def test_modules_status_after_daily_check(client, investor, activities):
    client.post("/api/v1/cron/daily-check")
    body = client.get("/api/v1/activities", headers=auth_headers(investor)).json()
    statuses = {m["module_id"]: m for m in body["modules_status"]}
    assert statuses["vendas-b2c"]["last_activity_type"] == "DATA_NO_CHANGE"
    assert statuses["vendas-b2c"]["status"] == "no_update"
    assert statuses["marketing"]["status"] == "updated"


# ── Daily check ────────────────────────────────────────────────────────────

def test_daily_check_flags_modules_without_update(client, db, activities):
    resp = client.post("/api/v1/cron/daily-check")
    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["summary"] == {"modules_with_update": 2, "modules_without_update": len(MODULES) - 2}
    assert body["results"]["cobranca"]["had_update"] is True
    assert body["results"]["vendas-b2c"]["had_update"] is False

    no_change = db.query(ActivityLog).filter(ActivityLog.type == ActivityType.DATA_NO_CHANGE).all()
    assert {a.module_id for a in no_change} == set(MODULES) - {"cobranca", "marketing"}
    assert db.query(ActivityLog).filter(ActivityLog.type == ActivityType.DATA_REFRESH).count() == 1

    run = get_last_task_run(db, "daily-check")
    assert run.status == "success"
    assert json.loads(run.details)["summary"]["modules_with_update"] == 2


def test_daily_check_shows_up_in_activity_feed(client, investor, activities):
    client.get("/api/v1/cron/daily-check")
    body = client.get("/api/v1/activities", headers=auth_headers(investor)).json()
    assert body["cron_jobs"]["daily_check"]["status"] == "success"


def test_daily_check_requires_secret_outside_development(client, roles, monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")
    monkeypatch.setattr(settings, "CRON_SECRET", "s3cret")

    assert client.get("/api/v1/cron/daily-check").status_code == 401
    wrong = client.get("/api/v1/cron/daily-check", headers={"Authorization": "Bearer nope"})
    assert wrong.status_code == 401
    ok = client.get("/api/v1/cron/daily-check", headers={"Authorization": "Bearer s3cret"})
    assert ok.status_code == 200


def test_daily_check_rejects_when_secret_unset(client, roles, monkeypatch):
    monkeypatch.setattr(settings, "ENVIRONMENT", "production")
    monkeypatch.setattr(settings, "CRON_SECRET", "")
    resp = client.get("/api/v1/cron/daily-check", headers={"Authorization": "Bearer "})
    assert resp.status_code == 401


def test_daily_check_failure_is_recorded(client, db, roles, monkeypatch):
    def _boom(db, now=None):
        raise RuntimeError("sheet unavailable")

    monkeypatch.setattr(cron, "run_daily_check", _boom)
    resp = client.post("/api/v1/cron/daily-check")
    assert resp.status_code == 500
    assert resp.json()["message"] == "sheet unavailable"

    run = db.query(ScheduledTaskRun).one()
    assert run.status == "error"
    assert run.details == "sheet unavailable"
