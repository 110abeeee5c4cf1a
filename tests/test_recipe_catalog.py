"""
Tests for the in-memory Recipe Catalog service.

Covers startup readiness, accessors, user edits (create, rename, delete),
shared-file import and export, and display conversion.
"""

import json
import threading
import time
import uuid
from datetime import date
from unittest.mock import patch

import pytest

from catalog.entries import CatalogEntry, Category
from catalog.exceptions import CatalogWriteError, EntryDecodeError, ReadOnlyRecipeError
from catalog.preferences import UserPreferences
from catalog.services.local_store import DeleteOutcome, LocalCatalogStore
from catalog.services.readiness import ReadinessGate
from catalog.services.recipe_catalog import RecipeCatalog, share_filename

CAPPUCCINO_ID = uuid.UUID("1b4f8a2e-3d5c-4e6f-9a7b-8c2d1e0f3456")


@pytest.fixture
def catalog(store, remote_server):
    catalog = RecipeCatalog(
        store=store,
        preferences=UserPreferences(username="tester"),
        client_factory=remote_server.client_factory(),
        start_timer=False,
    )
    catalog.load()
    return catalog


class TestStartup:
    @pytest.mark.asyncio
    async def test_start_loads_and_syncs(self, store, remote_server, recipe_payload):
        remote_server.add("mocha.brewpadrecipe", recipe_payload("Mocha", isWeeklyFeature=True))
        catalog = RecipeCatalog(
            store=store,
            preferences=UserPreferences(),
            client_factory=remote_server.client_factory(),
            start_timer=False,
        )

        report = await catalog.start()

        assert report.outcome == "success"
        assert [entry.name for entry in catalog.weekly_features()] == ["Mocha"]
        assert catalog.gate.is_set("local_loaded")
        assert catalog.gate.is_set("sync_attempted")
        assert not catalog.ready

        catalog.gate.mark_min_time_elapsed()
        assert catalog.ready

    @pytest.mark.asyncio
    async def test_ready_even_when_server_unreachable(self, store, remote_server):
        remote_server.unreachable = True
        catalog = RecipeCatalog(
            store=store,
            preferences=UserPreferences(),
            client_factory=remote_server.client_factory(),
        )

        await catalog.start()

        assert catalog.gate.wait(timeout=2)
        assert {entry.name for entry in catalog.recipes} == {"Cappuccino", "Earl Grey Tea"}

    def test_timer_uses_birthday_duration(self, store, settings):
        settings.BREWPAD_BIRTHDAY_SPLASH_SECONDS = 3
        gate = ReadinessGate()
        birthday = UserPreferences(birthdate=date.today())

        with patch.object(gate, "start_min_timer") as start_min_timer:
            RecipeCatalog(store=store, preferences=birthday, gate=gate)

        start_min_timer.assert_called_once_with(3.0)


class TestConcurrentLoads:
    """A slow load that started earlier never replaces a newer snapshot."""

    @pytest.mark.asyncio
    async def test_slow_startup_load_keeps_synced_recipes(
        self, store, remote_server, recipe_payload
    ):
        remote_server.add("mocha.brewpadrecipe", recipe_payload("Mocha"))
        catalog = RecipeCatalog(
            store=store,
            preferences=UserPreferences(),
            client_factory=remote_server.client_factory(),
            start_timer=False,
        )
        real_load_all = store.load_all
        calls = []

        def slow_first_load_all():
            result = real_load_all()
            calls.append(result)
            if len(calls) == 1:
                time.sleep(0.3)
            return result

        with patch.object(store, "load_all", side_effect=slow_first_load_all):
            await catalog.start()

        assert len(calls) == 2
        assert "Mocha" in [entry.name for entry in catalog.recipes]

    def test_older_snapshot_is_discarded(self, store, make_entry):
        catalog = RecipeCatalog(store=store, preferences=UserPreferences(), start_timer=False)
        real_load_all = store.load_all
        first_read_done = threading.Event()
        release_first = threading.Event()
        calls = []

        def blocking_first_load_all():
            result = real_load_all()
            calls.append(result)
            if len(calls) == 1:
                first_read_done.set()
                release_first.wait(timeout=5)
            return result

        with patch.object(store, "load_all", side_effect=blocking_first_load_all):
            slow = threading.Thread(target=catalog.load)
            slow.start()
            assert first_read_done.wait(timeout=5)

            store.write(make_entry(name="Cortado"))
            catalog.load()
            release_first.set()
            slow.join(timeout=5)

        assert "Cortado" in [entry.name for entry in catalog.recipes]
        assert catalog.gate.is_set("local_loaded")


class TestExternalChanges:
    """Writes made by another process (a Celery worker) reach this catalog."""

    def test_unchanged_directory_is_not_reloaded(self, catalog, store, make_entry):
        store.write(make_entry(name="Cortado"))
        catalog.load()

        with patch.object(store, "load_all", wraps=store.load_all) as load_all:
            assert catalog.reload_if_changed() is False

        load_all.assert_not_called()

    def test_file_written_elsewhere_is_picked_up(self, catalog, recipes_dir, make_entry):
        assert catalog.store.directory_mtime() is None

        LocalCatalogStore(recipes_dir=recipes_dir).write(make_entry(name="Ristretto"))

        assert catalog.reload_if_changed() is True
        assert "Ristretto" in [entry.name for entry in catalog.recipes]

    def test_file_removed_elsewhere_disappears(self, catalog, store, recipes_dir, make_entry):
        entry = make_entry(name="Ristretto")
        store.write(entry)
        catalog.load()
        # Directory timestamps can be coarse; let the clock move on.
        time.sleep(0.05)

        LocalCatalogStore(recipes_dir=recipes_dir).delete(entry)

        assert catalog.reload_if_changed() is True
        assert catalog.get(entry.id) is None


class TestAccessors:
    def test_recipes_are_sorted_by_name(self, catalog, store, make_entry):
        store.write(make_entry(name="Zebra Latte"))
        store.write(make_entry(name="Affogato"))
        catalog.load()

        names = [entry.name for entry in catalog.recipes]
        assert names == sorted(names, key=str.lower)
        assert names[0] == "Affogato"

    def test_get_by_id_or_string(self, catalog):
        assert catalog.get(CAPPUCCINO_ID).name == "Cappuccino"
        assert catalog.get(str(CAPPUCCINO_ID).upper()).name == "Cappuccino"
        assert catalog.get("not-an-id") is None

    def test_recipes_for_category(self, catalog):
        assert [e.name for e in catalog.recipes_for_category("Tea")] == ["Earl Grey Tea"]
        assert len(catalog.recipes_for_category("All")) == 2
        assert catalog.recipes_for_category("GreenTea") == []

    def test_unknown_category_raises(self, catalog):
        with pytest.raises(EntryDecodeError):
            catalog.recipes_for_category("Smoothie")

    def test_user_recipes_exclude_brewpad(self, catalog, store, make_entry):
        store.write(make_entry(name="Mine", creator="tester"))
        catalog.load()

        assert [entry.name for entry in catalog.user_recipes] == ["Mine"]

    def test_reload_swaps_whole_list(self, catalog, store, make_entry):
        before = catalog.recipes
        store.write(make_entry(name="Mine"))

        catalog.load()

        assert len(before) == 2
        assert len(catalog.recipes) == 3

    def test_duplicate_ids_keep_first(self, catalog, store, make_entry):
        entry = make_entry(name="Twin")
        store.write(entry, ".json")
        store.write(entry.with_changes(description="other"), ".brewpadrecipe")

        catalog.load()

        assert [e.name for e in catalog.recipes].count("Twin") == 1


class TestSave:
    """User create and edit flows."""

    def test_create_uses_username_as_creator(self, catalog):
        entry = catalog.create("Iced Latte", "Coffee", "Cold", ["200ml milk"], ["Shake"])

        assert entry.creator == "tester"
        assert catalog.get(entry.id) == entry

    def test_new_entry_without_username_is_unknown(self, store, remote_server):
        catalog = RecipeCatalog(
            store=store,
            preferences=UserPreferences(username=None),
            client_factory=remote_server.client_factory(),
            start_timer=False,
        )
        entry = catalog.save(CatalogEntry.create("Chai", "Tea", "", [], []))

        assert entry.creator == "Unknown"

    def test_user_cannot_claim_first_party(self, catalog):
        entry = CatalogEntry.create("Sneaky", "Coffee", "", [], [], creator="Brewpad")

        saved = catalog.save(entry)

        assert saved.creator == "tester"
        assert saved.is_deletable

    def test_feature_flags_never_survive_save(self, catalog, make_entry):
        saved = catalog.save(make_entry(is_weekly_feature=True))

        assert not saved.is_weekly_feature
        assert not catalog.get(saved.id).is_weekly_feature

    def test_rename_keeps_id_and_one_file(self, catalog, store):
        entry = catalog.create("Flat White", "Coffee", "", [], [])

        renamed = catalog.save(entry.with_changes(name="Cortado"))

        assert renamed.id == entry.id
        assert catalog.get(entry.id).name == "Cortado"
        assert len(list(store.recipes_dir.iterdir())) == 1

    def test_edit_keeps_creator(self, catalog, store, make_entry):
        original = make_entry(creator="Copied from bob")
        store.write(original)
        catalog.load()

        saved = catalog.save(original.with_changes(creator="tester", description="mine now"))

        assert saved.creator == "Copied from bob"

    def test_built_in_cannot_be_edited(self, catalog):
        cappuccino = catalog.get(CAPPUCCINO_ID)

        with pytest.raises(ReadOnlyRecipeError):
            catalog.save(cappuccino.with_changes(name="Not Cappuccino"))

    def test_failed_write_leaves_memory_untouched(self, catalog, store):
        entry = catalog.create("Flat White", "Coffee", "", [], [])
        before = catalog.recipes

        with patch.object(store, "_atomic_write", side_effect=OSError("disk full")):
            with pytest.raises(CatalogWriteError):
                catalog.save(entry.with_changes(name="Cortado"))

        assert catalog.recipes == before
        assert catalog.get(entry.id).name == "Flat White"


class TestDelete:
    def test_delete_user_recipe(self, catalog):
        entry = catalog.create("Flat White", "Coffee", "", [], [])

        assert catalog.delete(entry.id) == DeleteOutcome.DELETED
        assert catalog.get(entry.id) is None

    def test_built_in_delete_is_a_no_op(self, catalog, store):
        before = catalog.recipes

        assert catalog.delete(CAPPUCCINO_ID) == DeleteOutcome.REFUSED
        assert catalog.recipes == before
        assert not store.recipes_dir.exists()

    def test_first_party_delete_is_refused(self, catalog, store, make_entry):
        entry = make_entry(creator="Brewpad")
        path = store.write(entry, ".brewpadrecipe")
        catalog.load()

        assert catalog.delete(entry) == DeleteOutcome.REFUSED
        assert path.exists()
        assert catalog.get(entry.id) is not None

    def test_unknown_id(self, catalog):
        assert catalog.delete(uuid.uuid4()) == DeleteOutcome.NOT_FOUND


class TestSharing:
    def test_import_creates_attributed_copy(self, catalog, store, recipe_payload):
        payload = recipe_payload(
            "Mocha", creator="bob", isBuiltIn=True,
            isWeeklyFeature=True, isCommunityHighlight=True,
        )

        imported = catalog.import_shared(json.dumps(payload).encode("utf-8"))

        assert imported.id != uuid.UUID(payload["id"])
        assert imported.creator == "Copied from bob"
        assert imported.is_copy
        assert not imported.is_built_in
        assert not imported.is_featured
        assert catalog.get(imported.id) == imported
        assert [p.suffix for p in store.recipes_dir.iterdir()] == [".json"]

    def test_import_invalid_payload(self, catalog):
        with pytest.raises(EntryDecodeError):
            catalog.import_shared(b'{"name": "half a recipe"}')

    def test_export_payload_is_clean_copy(self, catalog):
        data = json.loads(catalog.export_payload(CAPPUCCINO_ID))

        assert data["name"] == "Cappuccino"
        assert data["creator"] == "Brewpad"
        assert data["isBuiltIn"] is False
        assert data["isWeeklyFeature"] is False

    def test_export_then_import(self, catalog):
        imported = catalog.import_shared(catalog.export_payload(CAPPUCCINO_ID))

        assert imported.creator == "Copied from Brewpad"
        assert imported.is_deletable

    def test_share_filename(self, make_entry):
        assert share_filename(make_entry(name="Earl Grey Tea")) == "earl_grey_tea.brewpadrecipe"


class TestDisplay:
    def test_metric_user_sees_stored_text(self, catalog, make_entry):
        entry = make_entry()

        assert catalog.display(entry, UserPreferences(use_metric_units=True)) is entry

    def test_imperial_user_sees_converted_text(self, catalog, make_entry):
        entry = make_entry(
            ingredients=("18g coffee", "120ml milk"),
            preparations=("Steam milk to 60°C",),
        )

        shown = catalog.display(entry, UserPreferences(use_metric_units=False))

        assert shown.ingredients == ("0.6 oz coffee", "4.1 fl oz milk")
        assert shown.preparations == ("Steam milk to 140°F",)
        assert shown.id == entry.id


class TestServerHealth:
    @pytest.mark.asyncio
    async def test_check_server_health(self, catalog, remote_server):
        remote_server.health_status = 503

        status = await catalog.check_server_health()

        assert status.message == "Status: 503"
        assert status.show_error


def test_category_enum_round_trip():
    assert Category("Green Tea") is Category.GREEN_TEA
