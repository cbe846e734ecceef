"""Every error response has the same {"error", "message", "details"} shape."""

from fastapi import Query

from academy.domain.exceptions import ConflictException


async def test_unknown_route_uses_error_shape(client):
    response = await client.get("/no-such-route")

    assert response.status_code == 404
    assert response.json() == {"error": "HTTP_ERROR", "message": "Not Found", "details": {}}


async def test_validation_error_lists_fields(app, client):
    @app.get("/needs-int")
    def needs_int(n: int = Query(...)) -> dict[str, int]:
        return {"n": n}

    response = await client.get("/needs-int", params={"n": "abc"})

    assert response.status_code == 422
    body = response.json()
    assert body["error"] == "VALIDATION_ERROR"
    assert body["details"]["errors"][0]["loc"] == ["query", "n"]


async def test_conflict_maps_to_409(app, client):
    @app.get("/conflict")
    def conflict() -> None:
        raise ConflictException("Class already open for this year")

    response = await client.get("/conflict")

    assert response.status_code == 409
    assert response.json()["error"] == "CONFLICT"
