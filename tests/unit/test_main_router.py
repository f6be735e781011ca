import json

from handlers import main


def test_main_routes_health(monkeypatch):
    monkeypatch.setattr(main.health_check, "lambda_handler", lambda e, c: {"status": "ok"})
    event = {"requestContext": {"http": {"method": "GET", "path": "/health"}}}
    resp = main.lambda_handler(event, None)
    assert resp["status"] == "ok"


def test_main_routes_ticket_generation(monkeypatch):
    marker = {}

    def fake_handler(event, context):
        marker["called"] = True
        return {"statusCode": 200}

    monkeypatch.setattr(main.ticket_generation, "lambda_handler", fake_handler)
    event = {"requestContext": {"http": {"method": "POST", "path": "/orders/o-123/tickets"}}}
    resp = main.lambda_handler(event, None)
    assert resp["statusCode"] == 200
    assert marker["called"] is True


def test_main_routes_approve(monkeypatch):
    monkeypatch.setattr(main.ticket_generation, "approve_handler", lambda e, c: {"approved": True})
    event = {"requestContext": {"http": {"method": "POST", "path": "/orders/o-123/approve/"}}}
    resp = main.lambda_handler(event, None)
    assert resp["approved"] is True


def test_main_rejects_wrong_method():
    event = {"requestContext": {"http": {"method": "GET", "path": "/orders/o-123/tickets"}}}
    resp = main.lambda_handler(event, None)
    assert resp["statusCode"] == 404


def test_main_unknown_route():
    event = {"requestContext": {"http": {"method": "GET", "path": "/unknown"}}}
    resp = main.lambda_handler(event, None)
    assert resp["statusCode"] == 404
    body = json.loads(resp["body"])
    assert body["message"] == "Route not found"
