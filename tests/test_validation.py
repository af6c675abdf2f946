"""
Validation responses through the ASGI stack.
"""

from typing import Annotated, List, Optional

import pytest

from pinion import ValidationIssue, authorize, route, validate

from tests.conftest import make_client


def not_empty(value, ctx):
    if not value:
        return "Must not be empty"
    return None


async def adult(value, ctx):
    if value is not None and value < 18:
        return "Must be at least 18"
    return None


class OwnerModel:
    def __init__(self, name: Annotated[str, validate(not_empty)], age: Annotated[int, validate(adult)]):
        self.name = name
        self.age = age


class AnimalModel:
    def __init__(self, name: Annotated[str, validate("required")], owners: List[OwnerModel]):
        self.name = name
        self.owners = owners


class AnimalController:
    def get(self, name: Annotated[str, validate(not_empty)]):
        return {"name": name}

    @route.post()
    def save(self, data: AnimalModel):
        return {"saved": data.name}

    def age(self, age: Annotated[int, validate(adult)]):
        return {"age": age}

    def secret(self, note: Annotated[Optional[str], authorize.role("admin"), validate(not_empty)] = None):
        return {"note": note}


def client(**options):
    options.setdefault("validators", {"required": not_empty})
    return make_client(AnimalController, **options)


class TestValidation:

    @pytest.mark.asyncio
    async def test_passes(self):
        resp = await client().get("/animal/get?name=Mimi")
        assert resp.status_code == 200

    @pytest.mark.asyncio
    async def test_parameter_rejected(self):
        resp = await client().get("/animal/get?name=")
        assert resp.status_code == 422
        assert resp.json() == [{"path": ["name"], "messages": ["Must not be empty"]}]

    @pytest.mark.asyncio
    async def test_async_validator(self):
        resp = await client().get("/animal/age?age=12")
        assert resp.status_code == 422
        assert resp.json() == [{"path": ["age"], "messages": ["Must be at least 18"]}]

    @pytest.mark.asyncio
    async def test_conversion_runs_first(self):
        resp = await client().get("/animal/age?age=twelve")
        assert resp.status_code == 400

    @pytest.mark.asyncio
    async def test_nested_models(self):
        resp = await client().post("/animal/save", json={
            "name": "",
            "owners": [{"name": "Ann", "age": "30"}, {"name": "", "age": "10"}],
        })
        assert resp.status_code == 422
        assert resp.json() == [
            {"path": ["data", "name"], "messages": ["Must not be empty"]},
            {"path": ["data", "owners", "1", "name"], "messages": ["Must not be empty"]},
            {"path": ["data", "owners", "1", "age"], "messages": ["Must be at least 18"]},
        ]

    @pytest.mark.asyncio
    async def test_unknown_validator_key_is_server_error(self):
        resp = await make_client(AnimalController).post("/animal/save", json={"name": "Mimi"})
        assert resp.status_code == 500

    @pytest.mark.asyncio
    async def test_role_parameter_optional(self):
        resp = await client().get("/animal/secret")
        assert resp.json() == {"note": None}

    @pytest.mark.asyncio
    async def test_role_parameter_checked_when_present(self):
        resp = await client().get("/animal/secret?note=")
        assert resp.status_code == 422


class TestValidatorHook:

    @pytest.mark.asyncio
    async def test_hook_replaces_default(self):
        calls = []

        async def hook(value, parameter, ctx, store):
            calls.append(parameter.name)
            if value == "forbidden":
                return [ValidationIssue((parameter.name,), ("Not allowed",))]
            return []

        api = client(validator=hook)
        assert (await api.get("/animal/get?name=")).status_code == 200
        resp = await api.get("/animal/get?name=forbidden")
        assert resp.status_code == 422
        assert resp.json() == [{"path": ["name"], "messages": ["Not allowed"]}]
        assert calls == ["name", "name"]
