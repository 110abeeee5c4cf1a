"""
Pytest configuration and fixtures for the recipe catalog test suite.
"""

import json
import uuid

import httpx
import pytest


class FakeRecipeServer:
    """
    In-memory stand-in for the remote recipe index, served through
    httpx.MockTransport.

    The listing at /recipes/ is an HTML directory page linking every file in
    `files`; each file is served from /recipes/<name>.
    """

    def __init__(self):
        self.files = {}
        self.listing_status = 200
        self.listing_body = None
        self.health_status = 200
        self.unreachable = False
        self.broken = set()
        self.requests = []

    def add(self, name, recipe):
        """Publish a recipe (dict or raw bytes) under name."""
        if isinstance(recipe, dict):
            recipe = json.dumps(recipe).encode("utf-8")
        self.files[name] = recipe

    def remove(self, name):
        self.files.pop(name, None)

    def listing(self):
        if self.listing_body is not None:
            return self.listing_body
        links = "".join(
            f'<li><a href="/recipes/{name}">{name}</a></li>' for name in self.files
        )
        return f"<html><body><ul>{links}</ul></body></html>"

    def handler(self, request):
        if self.unreachable:
            raise httpx.ConnectError("Connection refused", request=request)

        path = request.url.path
        self.requests.append(path)

        if path == "/":
            return httpx.Response(self.health_status, text="ok")
        if path == "/recipes/":
            return httpx.Response(self.listing_status, text=self.listing())

        name = path.rsplit("/", 1)[-1]
        if name in self.broken:
            return httpx.Response(500, text="boom")
        if name in self.files:
            return httpx.Response(200, content=self.files[name])
        return httpx.Response(404, text="not found")

    def client_factory(self):
        from catalog.fetchers.remote_index import RemoteIndexClient

        transport = httpx.MockTransport(self.handler)
        return lambda: RemoteIndexClient(transport=transport)


def _recipe_payload(name="Mocha", **overrides):
    """Recipe JSON object in the shared schema."""
    payload = {
        "id": str(uuid.uuid4()).upper(),
        "name": name,
        "category": "Coffee",
        "description": f"{name} description",
        "ingredients": ["18g coffee", "200ml milk"],
        "preparations": ["Heat milk to 65°C", "Combine"],
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def recipe_payload():
    """Factory for recipe JSON objects in the shared schema."""
    return _recipe_payload


@pytest.fixture(autouse=True)
def recipes_dir(tmp_path, settings):
    """Point the catalog at a temporary recipe directory for every test."""
    from catalog.services.recipe_catalog import reset_catalog

    directory = tmp_path / "Recipes"
    settings.BREWPAD_RECIPES_DIR = directory
    reset_catalog()
    yield directory
    reset_catalog()


@pytest.fixture
def store(recipes_dir):
    """Local store over the temporary directory and the packaged recipes."""
    from catalog.services.local_store import LocalCatalogStore

    return LocalCatalogStore(recipes_dir=recipes_dir)


@pytest.fixture
def remote_server():
    return FakeRecipeServer()


@pytest.fixture
def patched_remote(remote_server, monkeypatch):
    """Route every RemoteIndexClient the catalog builds to the fake server."""
    monkeypatch.setattr(
        "catalog.services.recipe_catalog.RemoteIndexClient",
        remote_server.client_factory(),
    )
    return remote_server


@pytest.fixture
def make_entry():
    """Factory for CatalogEntry instances."""
    from catalog.entries import CatalogEntry, Category

    def _make(name="Flat White", creator="alice", **fields):
        defaults = dict(
            id=uuid.uuid4(),
            name=name,
            category=Category.COFFEE,
            description="Velvety",
            ingredients=("18g coffee", "120ml milk"),
            preparations=("Pull espresso", "Steam milk to 60°C"),
            creator=creator,
        )
        defaults.update(fields)
        return CatalogEntry(**defaults)

    return _make


@pytest.fixture
def write_recipe_file(recipes_dir):
    """Write a raw recipe payload straight into the recipe directory."""

    def _write(filename, payload):
        recipes_dir.mkdir(parents=True, exist_ok=True)
        path = recipes_dir / filename
        if isinstance(payload, dict):
            payload = json.dumps(payload)
        if isinstance(payload, str):
            payload = payload.encode("utf-8")
        path.write_bytes(payload)
        return path

    return _write


@pytest.fixture
def api_client():
    """Create a test API client."""
    from rest_framework.test import APIClient

    return APIClient()
