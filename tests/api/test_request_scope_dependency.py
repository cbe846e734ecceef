"""require_scope() through FastAPI: status codes and error bodies per scope failure."""

import os
from datetime import date, datetime, timedelta, timezone
from typing import Annotated

import pytest
from fastapi import Depends
from httpx import ASGITransport, AsyncClient
from jose import jwt

from academy.api.dependencies import get_request_scope_resolver, require_scope
from academy.application.dtos.academic_year import AcademicYearResult
from academy.application.services import (
    AcademicYearContextResolver,
    RequestScopeResolver,
    TenantContextResolver,
)
from academy.domain.exceptions import NotFoundException
from academy.domain.value_objects.scope import RequestScope
from academy.main import create_app

Y1 = "11111111-1111-4111-8111-111111111111"
Y2 = "22222222-2222-4222-8222-222222222222"
Y_OTHER = "99999999-9999-4999-8999-999999999999"


class _Years:
    def __init__(self) -> None:
        self.years = {
            Y1: AcademicYearResult(Y1, "a1", "Y1", date(2024, 9, 1), date(2025, 6, 30), True),
            Y2: AcademicYearResult(Y2, "a1", "Y2", date(2025, 9, 1), date(2026, 6, 30), False),
            Y_OTHER: AcademicYearResult(
                Y_OTHER, "a2", "Other", date(2025, 9, 1), date(2026, 6, 30), False
            ),
        }

    async def get_by_id(self, academic_year_id):
        return self.years.get(academic_year_id)

    async def get_current(self, academy_id):
        return next(
            (y for y in self.years.values() if y.academy_id == academy_id and y.is_current),
            None,
        )


def _bearer(sub: str = "u1", **claims) -> dict[str, str]:
    token = jwt.encode(
        {"sub": sub, "exp": datetime.now(timezone.utc) + timedelta(minutes=5), **claims},
        os.environ["SECRET_KEY"],
        algorithm="HS256",
    )
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def scoped_client(settings):
    app = create_app()

    @app.get("/scope/year")
    async def year_scope(
        scope: Annotated[RequestScope, Depends(require_scope(year_required=True))],
    ) -> dict:
        return {"tenant_id": scope.tenant_id, "academic_year_id": scope.academic_year_id}

    @app.get("/scope/optional")
    async def optional_scope(
        scope: Annotated[RequestScope, Depends(require_scope(tenant_required=False))],
    ) -> dict:
        return {"tenant_id": scope.tenant_id}

    @app.get("/missing")
    async def missing() -> dict:
        raise NotFoundException("student", "STU404")

    app.dependency_overrides[get_request_scope_resolver] = lambda: RequestScopeResolver(
        TenantContextResolver(), AcademicYearContextResolver(_Years())
    )
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def test_fallback_to_current_year(scoped_client):
    response = await scoped_client.get("/scope/year", headers=_bearer(academy_id="a1"))
    assert response.status_code == 200
    assert response.json() == {"tenant_id": "a1", "academic_year_id": Y1}


async def test_explicit_year_header(scoped_client):
    response = await scoped_client.get(
        "/scope/year", headers={**_bearer(academy_id="a1"), "X-Academic-Year-ID": Y2}
    )
    assert response.status_code == 200
    assert response.json()["academic_year_id"] == Y2


async def test_year_of_other_academy_is_forbidden(scoped_client):
    response = await scoped_client.get(
        "/scope/year", headers={**_bearer(academy_id="a1"), "X-Academic-Year-ID": Y_OTHER}
    )
    assert response.status_code == 403
    assert response.json()["error"] == "FORBIDDEN"


async def test_malformed_year_header_is_bad_request(scoped_client):
    response = await scoped_client.get(
        "/scope/year", headers={**_bearer(academy_id="a1"), "X-Academic-Year-ID": "2025"}
    )
    assert response.status_code == 400
    assert response.json()["details"]["field"] == "academic_year_id"


async def test_no_current_year_is_bad_request(scoped_client):
    response = await scoped_client.get("/scope/year", headers=_bearer(academy_id="a3"))
    assert response.status_code == 400
    assert response.json()["message"].startswith("No current academic year found")


async def test_user_without_academy_is_forbidden(scoped_client):
    response = await scoped_client.get("/scope/year", headers=_bearer())
    assert response.status_code == 403
    assert "create or join an academy" in response.json()["message"]


async def test_missing_or_invalid_token_is_unauthenticated(scoped_client):
    assert (await scoped_client.get("/scope/year")).status_code == 401
    response = await scoped_client.get(
        "/scope/year", headers={"Authorization": "Bearer not-a-jwt"}
    )
    assert response.status_code == 401
    assert response.json()["error"] == "AUTHENTICATION_ERROR"


async def test_optional_scope_without_token(scoped_client):
    response = await scoped_client.get("/scope/optional")
    assert response.status_code == 200
    assert response.json() == {"tenant_id": None}


async def test_not_found_maps_to_404(scoped_client):
    response = await scoped_client.get("/missing")
    assert response.status_code == 404
    assert response.json()["details"] == {"resource_type": "student", "identifier": "STU404"}
