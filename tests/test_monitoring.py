"""
Tests for Sentry reporting of sync failures.
"""

from unittest.mock import MagicMock, patch

from catalog.monitoring import (
    _filter_sensitive_data,
    add_sync_breadcrumb,
    capture_sync_failure,
)


class TestFilterSensitiveData:
    def test_filters_sensitive_keys(self):
        data = {"name": "mocha.brewpadrecipe", "Authorization": "Bearer x", "api_key": "k"}

        filtered = _filter_sensitive_data(data)

        assert filtered["name"] == "mocha.brewpadrecipe"
        assert filtered["Authorization"] == "[Filtered]"
        assert filtered["api_key"] == "[Filtered]"

    def test_nested_dicts(self):
        filtered = _filter_sensitive_data({"request": {"cookie": "abc", "url": "/recipes/"}})

        assert filtered == {"request": {"cookie": "[Filtered]", "url": "/recipes/"}}


class TestSentryReporting:
    def test_breadcrumb_carries_stage(self):
        with patch("catalog.monitoring.sentry_sdk") as mock_sentry:
            add_sync_breadcrumb("listing", "Fetched listing", extra_data={"count": 3})

        mock_sentry.add_breadcrumb.assert_called_once_with(
            category="catalog.sync",
            message="Fetched listing",
            level="info",
            data={"stage": "listing", "count": 3},
        )

    def test_capture_sync_failure(self):
        scope = MagicMock()
        with patch("catalog.monitoring.sentry_sdk") as mock_sentry:
            mock_sentry.new_scope.return_value.__enter__.return_value = scope

            capture_sync_failure(
                "download", "HTTP 500", name="mocha.brewpadrecipe",
                extra_context={"token": "secret-value"},
            )

        scope.set_tag.assert_called_once_with("catalog.sync_stage", "download")
        scope.set_extra.assert_any_call("recipe_file", "mocha.brewpadrecipe")
        scope.set_extra.assert_any_call("sync_context", {"token": "[Filtered]"})
        mock_sentry.capture_message.assert_called_once_with(
            "Catalog sync download failed: HTTP 500", level="warning"
        )

    def test_sync_failure_is_reported(self, store, remote_server):
        """A failed listing reaches Sentry without breaking the cycle."""
        from asgiref.sync import async_to_sync

        from catalog.services.catalog_sync import CatalogSyncEngine

        remote_server.listing_status = 500
        engine = CatalogSyncEngine(store=store, client_factory=remote_server.client_factory())

        with patch("catalog.services.catalog_sync.capture_sync_failure") as capture:
            report = async_to_sync(engine.run)()

        assert not report.listing_ok
        assert capture.call_args[0][0] == "listing"
