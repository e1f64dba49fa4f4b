"""
Unit tests for StudioDataAccess.

The cache stack is real (in-process store, fake clocks); repositories are
``AsyncMock`` objects so database reads can be counted.
"""

from datetime import datetime, timedelta, timezone

import pytest

from src.core.cache.keys import CacheDataType
from src.core.exceptions import DatabaseError
from src.modules.sessions.tracker import LiveFiringSession
from src.modules.shared.exceptions import (
    ImportFormatError,
    RecordNotFoundError,
    ValidationError,
)

USER = "user-1"
OTHER_USER = "user-2"
RECIPES = [{"id": "r1", "name": "Celadon", "finish": "glossy"}]
KILNS = [{"id": "k1", "name": "Skutt 1027", "max_temperature": 1290}]


async def _is_cached(cache_manager, data_type, user_id=USER):
    return (await cache_manager.get(data_type, user_id)).hit


class TestCachedReads:
    async def test_glaze_recipes_expire_after_five_minutes(
        self, data_access, mock_repositories, clock
    ):
        mock_repositories.glazes.list_recipes.return_value = RECIPES

        first = await data_access.get_glaze_recipes_cached(USER)
        clock.advance(4 * 60 + 59)
        second = await data_access.get_glaze_recipes_cached(USER)
        clock.advance(2)
        third = await data_access.get_glaze_recipes_cached(USER)

        assert first.from_cache is False
        assert second.from_cache is True
        assert second.data == RECIPES
        assert third.from_cache is False
        assert mock_repositories.glazes.list_recipes.await_count == 2

    async def test_miss_then_hit_is_counted(self, data_access, mock_repositories, monitor):
        mock_repositories.kilns.list_kilns.return_value = KILNS

        await data_access.get_kilns_cached(USER)
        await data_access.get_kilns_cached(USER)

        metric = monitor.get_metrics(CacheDataType.KILNS)
        assert metric.total_requests == 2
        assert metric.hits == 1
        assert metric.misses == 1
        mock_repositories.kilns.list_kilns.assert_awaited_once_with(USER)

    async def test_miss_timestamp_is_now(self, data_access, mock_repositories, clock):
        mock_repositories.clay_bodies.list_clay_bodies.return_value = []

        result = await data_access.get_clay_bodies_cached(USER)

        assert result.timestamp == clock.now
        assert result.data == []

    async def test_other_user_reads_database(self, data_access, mock_repositories):
        mock_repositories.raw_materials.list_raw_materials.return_value = []

        await data_access.get_raw_materials_cached(USER)
        result = await data_access.get_raw_materials_cached(OTHER_USER)

        assert result.from_cache is False
        assert mock_repositories.raw_materials.list_raw_materials.await_count == 2

    async def test_no_active_session_is_cached(self, data_access, mock_repositories):
        mock_repositories.sessions.get_active.return_value = None

        await data_access.get_active_session_cached(USER)
        result = await data_access.get_active_session_cached(USER)

        assert result.from_cache is True
        assert result.data is None
        mock_repositories.sessions.get_active.assert_awaited_once()

    async def test_firing_logs_expire_after_two_minutes(
        self, data_access, mock_repositories, clock
    ):
        mock_repositories.firing_logs.list_logs.return_value = []

        await data_access.get_firing_logs_cached(USER)
        clock.advance(121)
        result = await data_access.get_firing_logs_cached(USER)

        assert result.from_cache is False

    async def test_database_error_propagates_and_counts_miss(
        self, data_access, mock_repositories, cache_manager, monitor
    ):
        mock_repositories.kilns.list_kilns.side_effect = DatabaseError(
            "list_kilns", OSError("connection refused")
        )

        with pytest.raises(DatabaseError):
            await data_access.get_kilns_cached(USER)

        assert not await _is_cached(cache_manager, CacheDataType.KILNS)
        assert monitor.get_metrics(CacheDataType.KILNS).misses == 1
        assert monitor.open_timings == 0


class TestWrites:
    async def test_save_invalidates_glaze_cache(
        self, data_access, mock_repositories, cache_manager
    ):
        mock_repositories.glazes.list_recipes.return_value = RECIPES
        mock_repositories.glazes.create.return_value = {"id": "r2"}
        await data_access.get_glaze_recipes_cached(USER)

        saved = await data_access.save_glaze_recipe_cached(USER, {"name": "Tenmoku"})
        result = await data_access.get_glaze_recipes_cached(USER)

        assert saved == {"id": "r2"}
        assert result.from_cache is False
        assert mock_repositories.glazes.list_recipes.await_count == 2

    async def test_save_with_nothing_cached(self, data_access, mock_repositories, cache_manager):
        mock_repositories.kilns.create.return_value = {"id": "k2"}

        await data_access.add_kiln_cached(USER, {"name": "Gas kiln"})

        assert not await _is_cached(cache_manager, CacheDataType.KILNS)

    async def test_write_only_touches_its_type(
        self, data_access, mock_repositories, cache_manager
    ):
        mock_repositories.kilns.list_kilns.return_value = KILNS
        mock_repositories.glazes.list_recipes.return_value = RECIPES
        await data_access.get_kilns_cached(USER)
        await data_access.get_glaze_recipes_cached(USER)

        await data_access.delete_kiln_cached(USER, "k1")

        assert not await _is_cached(cache_manager, CacheDataType.KILNS)
        assert await _is_cached(cache_manager, CacheDataType.GLAZES)

    async def test_failed_write_does_not_invalidate(
        self, data_access, mock_repositories, cache_manager
    ):
        mock_repositories.glazes.list_recipes.return_value = RECIPES
        mock_repositories.glazes.create.side_effect = DatabaseError("insert", OSError("down"))
        await data_access.get_glaze_recipes_cached(USER)

        with pytest.raises(DatabaseError):
            await data_access.save_glaze_recipe_cached(USER, {"name": "Tenmoku"})

        assert await _is_cached(cache_manager, CacheDataType.GLAZES)

    async def test_update_of_missing_row_does_not_invalidate(
        self, data_access, mock_repositories, cache_manager
    ):
        mock_repositories.firing_logs.list_logs.return_value = []
        mock_repositories.firing_logs.update.side_effect = RecordNotFoundError(
            "FiringLog", "missing", USER
        )
        await data_access.get_firing_logs_cached(USER)

        with pytest.raises(RecordNotFoundError):
            await data_access.update_firing_log_cached(USER, "missing", {"notes": "x"})

        assert await _is_cached(cache_manager, CacheDataType.FIRING_LOGS)

    async def test_delete_of_missing_row_still_invalidates(
        self, data_access, mock_repositories, cache_manager
    ):
        mock_repositories.clay_bodies.list_clay_bodies.return_value = []
        mock_repositories.clay_bodies.delete.return_value = False
        await data_access.get_clay_bodies_cached(USER)

        deleted = await data_access.delete_clay_body_cached(USER, "missing")

        assert deleted is False
        assert not await _is_cached(cache_manager, CacheDataType.CLAY_BODIES)

    @pytest.mark.parametrize(
        "method, repo, repo_method, data_type",
        [
            ("update_glaze_recipe_cached", "glazes", "update", CacheDataType.GLAZES),
            ("update_kiln_cached", "kilns", "update", CacheDataType.KILNS),
            ("update_clay_body_cached", "clay_bodies", "update", CacheDataType.CLAY_BODIES),
            (
                "update_raw_material_cached",
                "raw_materials",
                "update",
                CacheDataType.RAW_MATERIALS,
            ),
        ],
    )
    async def test_updates_invalidate_their_type(
        self, data_access, mock_repositories, cache_manager, method, repo, repo_method, data_type
    ):
        await cache_manager.set(data_type, [], USER)
        getattr(getattr(mock_repositories, repo), repo_method).return_value = {"id": "x"}

        result = await getattr(data_access, method)(USER, "x", {"name": "New"})

        assert result == {"id": "x"}
        assert not await _is_cached(cache_manager, data_type)

    async def test_raw_material_add_and_delete(
        self, data_access, mock_repositories, cache_manager
    ):
        mock_repositories.raw_materials.create.return_value = {"id": "m1"}
        mock_repositories.raw_materials.delete.return_value = True
        await cache_manager.set(CacheDataType.RAW_MATERIALS, [], USER)

        await data_access.add_raw_material_cached(USER, {"name": "EPK"})
        assert not await _is_cached(cache_manager, CacheDataType.RAW_MATERIALS)

        await cache_manager.set(CacheDataType.RAW_MATERIALS, [], USER)
        assert await data_access.delete_raw_material_cached(USER, "m1") is True
        assert not await _is_cached(cache_manager, CacheDataType.RAW_MATERIALS)


class TestShareLinks:
    async def test_sharing_recipe_invalidates_glaze_cache(
        self, data_access, mock_repositories, cache_manager
    ):
        mock_repositories.glazes.create_share_token.return_value = "tok-1"
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)
        await cache_manager.set(CacheDataType.FIRING_LOGS, [], USER)

        token = await data_access.share_glaze_recipe_cached(USER, "r1")

        assert token == "tok-1"
        mock_repositories.glazes.create_share_token.assert_awaited_once_with(USER, "r1")
        assert not await _is_cached(cache_manager, CacheDataType.GLAZES)
        assert await _is_cached(cache_manager, CacheDataType.FIRING_LOGS)

    async def test_sharing_missing_log_does_not_invalidate(
        self, data_access, mock_repositories, cache_manager
    ):
        mock_repositories.firing_logs.create_share_token.side_effect = RecordNotFoundError(
            "firing_log", "nope", USER
        )
        await cache_manager.set(CacheDataType.FIRING_LOGS, [], USER)

        with pytest.raises(RecordNotFoundError):
            await data_access.share_firing_log_cached(USER, "nope")

        assert await _is_cached(cache_manager, CacheDataType.FIRING_LOGS)

    async def test_shared_reads_bypass_cache(self, data_access, mock_repositories, monitor):
        mock_repositories.firing_logs.get_shared.return_value = {"id": "f1"}
        mock_repositories.glazes.get_shared.return_value = None

        log = await data_access.get_shared_firing_log(" tok-1 ")
        recipe = await data_access.get_shared_glaze_recipe("unknown")

        assert log == {"id": "f1"}
        assert recipe is None
        mock_repositories.firing_logs.get_shared.assert_awaited_once_with("tok-1")
        assert monitor.get_all_metrics() == {}

    @pytest.mark.parametrize("token", ["", "   ", None])
    async def test_blank_token_rejected(self, data_access, mock_repositories, token):
        with pytest.raises(ValidationError):
            await data_access.get_shared_glaze_recipe(token)

        mock_repositories.glazes.get_shared.assert_not_awaited()


class TestActiveSession:
    async def test_save_and_complete_invalidate(
        self, data_access, mock_repositories, cache_manager
    ):
        live = LiveFiringSession.start("k1", "Skutt", "bisque", 1000)
        mock_repositories.sessions.save.return_value = live.to_dict()
        mock_repositories.sessions.complete.return_value = 1
        await cache_manager.set(CacheDataType.ACTIVE_SESSION, None, USER)

        await data_access.save_active_session_cached(USER, live)
        assert not await _is_cached(cache_manager, CacheDataType.ACTIVE_SESSION)

        await cache_manager.set(CacheDataType.ACTIVE_SESSION, live.to_dict(), USER)
        assert await data_access.complete_active_session_cached(USER) == 1
        assert not await _is_cached(cache_manager, CacheDataType.ACTIVE_SESSION)

    async def test_delete_active_session(self, data_access, mock_repositories, cache_manager):
        mock_repositories.sessions.delete.return_value = 1
        await cache_manager.set(CacheDataType.ACTIVE_SESSION, None, USER)

        assert await data_access.delete_active_session_cached(USER) == 1
        assert not await _is_cached(cache_manager, CacheDataType.ACTIVE_SESSION)

    async def test_finish_session_writes_log_and_completes(
        self, data_access, mock_repositories, mock_database_service, cache_manager
    ):
        start = datetime(2025, 3, 4, 8, 0, tzinfo=timezone.utc)
        live = LiveFiringSession.start(
            "k1", "Skutt", "glaze", 1220, current_temperature=20, now=start
        )
        live.log_temperature(600, now=start + timedelta(hours=4))
        mock_repositories.firing_logs.add_in_session.return_value = {
            "id": "log-1",
            "firing_duration_hours": 8.0,
        }
        await cache_manager.set(CacheDataType.FIRING_LOGS, [], USER)
        await cache_manager.set(CacheDataType.ACTIVE_SESSION, live.to_dict(), USER)

        log = await data_access.finish_session_cached(USER, live, now=start + timedelta(hours=8))

        assert log["id"] == "log-1"
        session = mock_database_service.session
        payload = mock_repositories.firing_logs.add_in_session.await_args.args[2]
        assert payload["firing_duration_hours"] == 8.0
        assert payload["actual_temperature"] == 600
        mock_repositories.firing_logs.add_in_session.assert_awaited_once_with(
            session, USER, payload
        )
        mock_repositories.sessions.complete_in_session.assert_awaited_once_with(session, USER)
        assert not await _is_cached(cache_manager, CacheDataType.FIRING_LOGS)
        assert not await _is_cached(cache_manager, CacheDataType.ACTIVE_SESSION)


    async def test_fractional_reading_rejected_before_database(
        self, data_access, mock_repositories, cache_manager
    ):
        start = datetime(2025, 3, 4, 8, 0, tzinfo=timezone.utc)
        restored = LiveFiringSession.start(
            "k1", "Skutt", "glaze", 1220, current_temperature=20, now=start
        ).to_dict()
        restored["temperature_entries"][-1]["temperature"] = 1000.5
        live = LiveFiringSession.from_dict(restored)
        await cache_manager.set(CacheDataType.FIRING_LOGS, [], USER)

        with pytest.raises(ValidationError) as excinfo:
            await data_access.finish_session_cached(USER, live, now=start + timedelta(hours=8))

        assert excinfo.value.field == "actual_temperature"
        mock_repositories.firing_logs.add_in_session.assert_not_awaited()
        mock_repositories.sessions.complete_in_session.assert_not_awaited()
        assert await _is_cached(cache_manager, CacheDataType.FIRING_LOGS)


class TestSettingsImportExport:
    async def test_studio_name_change_invalidates_settings_types(
        self, data_access, mock_repositories, cache_manager
    ):
        mock_repositories.settings.update_studio_name.return_value = {
            "user_id": USER,
            "studio_name": "Mud Room",
        }
        for data_type in CacheDataType:
            await cache_manager.set(data_type, [], USER)

        await data_access.update_studio_name_cached(USER, "Mud Room")

        assert await _is_cached(cache_manager, CacheDataType.GLAZES)
        assert not await _is_cached(cache_manager, CacheDataType.KILNS)
        assert not await _is_cached(cache_manager, CacheDataType.CLAY_BODIES)
        assert not await _is_cached(cache_manager, CacheDataType.RAW_MATERIALS)

    async def test_get_studio_settings(self, data_access, mock_repositories):
        mock_repositories.settings.get_settings.return_value = {
            "user_id": USER,
            "studio_name": "",
        }

        settings = await data_access.get_studio_settings(USER)

        assert settings["studio_name"] == ""

    async def test_export_reads_through_cache(
        self, data_access, mock_repositories, cache_manager
    ):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)
        mock_repositories.firing_logs.list_logs.return_value = []
        mock_repositories.clay_bodies.list_clay_bodies.return_value = []
        mock_repositories.raw_materials.list_raw_materials.return_value = []

        document = await data_access.export_data(USER)

        assert document["glaze_recipes"] == RECIPES
        assert document["user_id"] == USER
        assert "export_date" in document
        mock_repositories.glazes.list_recipes.assert_not_awaited()
        assert await _is_cached(cache_manager, CacheDataType.GLAZES)

    async def test_import_inserts_in_order_and_invalidates(
        self, data_access, mock_repositories, mock_database_service, cache_manager
    ):
        order = []

        def recorder(name):
            async def insert_many(session, user_id, items):
                order.append(name)
                return len(items)

            return insert_many

        for name in ("clay_bodies", "raw_materials", "glazes", "firing_logs"):
            getattr(mock_repositories, name).insert_many.side_effect = recorder(name)
        for data_type in CacheDataType:
            await cache_manager.set(data_type, [], USER)

        counts = await data_access.import_data(
            USER,
            {
                "glaze_recipes": [{"name": "A"}, {"name": "B"}],
                "clay_bodies": [{"name": "Stoneware"}],
            },
        )

        assert counts == {
            "clay_bodies": 1,
            "raw_materials": 0,
            "glaze_recipes": 2,
            "firing_logs": 0,
        }
        assert order == [
            "clay_bodies",
            "raw_materials",
            "glazes",
            "firing_logs",
        ]
        assert await _is_cached(cache_manager, CacheDataType.ACTIVE_SESSION)
        assert not await _is_cached(cache_manager, CacheDataType.GLAZES)

    async def test_malformed_import_writes_nothing(
        self, data_access, mock_repositories, cache_manager
    ):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)

        with pytest.raises(ImportFormatError):
            await data_access.import_data(USER, {"glaze_recipes": "nope"})

        mock_repositories.glazes.insert_many.assert_not_awaited()
        assert await _is_cached(cache_manager, CacheDataType.GLAZES)

    async def test_clear_user_caches(self, data_access, cache_manager):
        await cache_manager.set(CacheDataType.GLAZES, RECIPES, USER)

        await data_access.clear_user_caches(USER)

        assert not await _is_cached(cache_manager, CacheDataType.GLAZES)
