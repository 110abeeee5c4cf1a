"""
Tests for the catalog Celery tasks.
"""

from catalog.services.recipe_catalog import get_catalog
from catalog.tasks import refresh_catalog


class TestRefreshCatalogTask:
    def test_returns_report_dict(self, patched_remote, recipe_payload):
        patched_remote.add("mocha.brewpadrecipe", recipe_payload("Mocha"))

        result = refresh_catalog()

        assert result["outcome"] == "success"
        assert result["downloaded"] == ["mocha.brewpadrecipe"]
        assert "Mocha" in [entry.name for entry in get_catalog().recipes]

    def test_unreachable_server_is_partial(self, patched_remote):
        patched_remote.unreachable = True

        result = refresh_catalog()

        assert result["outcome"] == "partial"
        assert result["error"]
        assert get_catalog().gate.is_set("sync_attempted")

    def test_task_name(self):
        assert refresh_catalog.name == "catalog.tasks.refresh_catalog"
