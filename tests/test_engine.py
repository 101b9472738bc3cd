import pytest

from advanced_exclude.engine import AdvancedExclude
from advanced_exclude.exceptions import UnsupportedBackendError
from advanced_exclude.persistence import Fingerprint
from advanced_exclude.settings import Settings
from advanced_exclude.types import ExcludeMode


def make_engine(backend, **kwargs):
    kwargs.setdefault("min_visible_duration", 0)
    return AdvancedExclude(backend, **kwargs)


def test_rejects_unsupported_backend():
    with pytest.raises(UnsupportedBackendError):
        AdvancedExclude(object())


def test_uses_backend_snapshot_and_presentation(vault_backend):
    engine = make_engine(vault_backend)
    assert engine.snapshot is vault_backend.snapshot
    assert engine.presentation is vault_backend.presentation
    assert engine.backend.inner is vault_backend


@pytest.mark.asyncio
async def test_inactive_engine_excludes_nothing(vault_backend):
    engine = make_engine(vault_backend)
    assert not engine.is_active
    assert not await engine.is_ignored("drafts", is_folder=True)


@pytest.mark.asyncio
async def test_start_reconciles_tree(vault_backend):
    engine = make_engine(vault_backend)

    run = await engine.start()

    assert run.completed
    assert engine.is_active
    assert engine.settings.ignore_patterns_content == "drafts/\n*.tmp\n!keep.tmp\n"
    assert vault_backend.snapshot.paths() == ["notes", "notes/keep.tmp", "notes/today.md", "readme.md"]
    assert await engine.is_ignored("drafts", is_folder=True)
    assert not await engine.is_ignored("notes/keep.tmp")
    await engine.shutdown()
    assert not engine.is_active


@pytest.mark.asyncio
async def test_context_manager(vault_backend):
    async with make_engine(vault_backend) as engine:
        assert engine.is_active
        assert await engine.is_ignored("notes/scratch.tmp")
    assert not engine.is_active


@pytest.mark.asyncio
async def test_secondary_source_is_included_by_default(vault_backend):
    vault_backend.add_file(".gitignore", "notes/\n")
    engine = make_engine(vault_backend)

    await engine.start()

    assert not vault_backend.snapshot.contains("notes")
    await engine.shutdown()


@pytest.mark.asyncio
async def test_disabling_secondary_source(vault_backend):
    vault_backend.add_file(".gitignore", "notes/\n")
    engine = make_engine(vault_backend)
    await engine.start()

    task = await engine.apply_settings(Settings(should_include_git_ignore_patterns=False))
    run = await task

    assert run.completed
    assert vault_backend.snapshot.contains("notes/today.md")
    assert await engine.notify_file_changed(".gitignore") is None
    await engine.shutdown()


@pytest.mark.asyncio
async def test_update_patterns(vault_backend):
    engine = make_engine(vault_backend)
    await engine.start()

    task = await engine.update_patterns("notes/\n")
    await task

    assert vault_backend.files[".obsidianignore"] == "notes/\n"
    assert engine.settings.ignore_patterns_content == "notes/\n"
    assert vault_backend.snapshot.contains("drafts/idea.md")
    assert not vault_backend.snapshot.contains("notes")
    assert await engine.update_patterns("notes/\n") is None
    await engine.shutdown()


@pytest.mark.asyncio
async def test_notify_file_changed(vault_backend):
    engine = make_engine(vault_backend)
    await engine.start()

    assert await engine.notify_file_changed("notes/today.md") is None
    assert await engine.notify_file_changed(".obsidianignore") is None

    vault_backend.add_file(".obsidianignore", "")
    task = await engine.notify_file_changed(".obsidianignore")
    await task

    assert engine.settings.ignore_patterns_content == ""
    assert vault_backend.snapshot.contains("drafts/idea.md")
    assert vault_backend.snapshot.contains("notes/scratch.tmp")
    await engine.shutdown()


@pytest.mark.asyncio
async def test_process_config_changes(vault_backend):
    engine = make_engine(vault_backend)
    await engine.start()
    vault_backend.add_file(".obsidianignore", "readme.md\n")

    task = await engine.process_config_changes()
    await task

    assert not vault_backend.snapshot.contains("readme.md")
    assert vault_backend.snapshot.contains("drafts")
    await engine.shutdown()


@pytest.mark.asyncio
async def test_switching_exclude_mode(vault_backend):
    engine = make_engine(vault_backend)
    await engine.start()

    task = await engine.apply_settings(Settings(exclude_mode=ExcludeMode.FILES_PANE))
    await task

    assert vault_backend.snapshot.contains("drafts/idea.md")
    assert not vault_backend.presentation.contains("drafts")
    assert not vault_backend.presentation.contains("notes/scratch.tmp")
    assert vault_backend.presentation.contains("notes/today.md")
    await engine.shutdown()


@pytest.mark.asyncio
async def test_unchanged_settings_request_nothing(vault_backend):
    engine = make_engine(vault_backend)
    await engine.start()

    assert await engine.apply_settings(Settings()) is None
    assert await engine.set_exclude_filters(["readme"]) is None
    await engine.shutdown()


@pytest.mark.asyncio
async def test_exclude_filters(vault_backend):
    engine = make_engine(vault_backend, settings=Settings(should_ignore_excluded_files=True))
    await engine.start()

    task = await engine.set_exclude_filters(["readme"])
    await task

    assert not vault_backend.snapshot.contains("readme.md")
    assert engine.current_fingerprint().exclude_filters == "readme"

    task = await engine.set_exclude_filters([])
    await task

    assert vault_backend.snapshot.contains("readme.md")
    await engine.shutdown()


@pytest.mark.asyncio
async def test_fingerprint_ignores_disabled_filters(vault_backend):
    engine = make_engine(vault_backend, settings=Settings(exclude_filters=["a", "b"]))
    await engine.activate()

    fingerprint = engine.current_fingerprint()

    assert fingerprint == Fingerprint(primary_mtime=vault_backend.mtimes[".obsidianignore"])
    await engine.shutdown()


@pytest.mark.asyncio
async def test_decisions_persist_across_sessions(vault_backend, tmp_path):
    state_path = tmp_path / "decisions.json"
    first = make_engine(vault_backend, state_path=state_path)
    await first.start()
    await first.shutdown()
    assert state_path.exists()

    second = make_engine(vault_backend, state_path=state_path)
    await second.activate()

    assert "drafts" in second.cache
    assert "notes/scratch.tmp" in second.cache
    await second.shutdown()


@pytest.mark.asyncio
async def test_persisted_decisions_discarded_when_rules_change(vault_backend, tmp_path):
    state_path = tmp_path / "decisions.json"
    first = make_engine(vault_backend, state_path=state_path)
    await first.start()
    await first.shutdown()

    vault_backend.add_file(".obsidianignore", "drafts/\n")
    second = make_engine(vault_backend, state_path=state_path)
    await second.activate()

    assert len(second.cache) == 0
    await second.shutdown()


@pytest.mark.asyncio
async def test_creation_through_engine_backend(vault_backend):
    engine = make_engine(vault_backend)
    await engine.start()

    await engine.backend.reconcile_file_creation("drafts/new.md")
    await engine.backend.reconcile_file_creation("notes/new.md")

    assert ("create_file", "drafts/new.md") not in vault_backend.mutations()
    assert vault_backend.snapshot.contains("notes/new.md")
    await engine.shutdown()


@pytest.mark.asyncio
async def test_deletion_forgets_decision(vault_backend):
    engine = make_engine(vault_backend)
    await engine.start()
    assert "readme.md" in engine.cache

    await engine.backend.reconcile_deletion("readme.md")

    assert "readme.md" not in engine.cache
    assert not vault_backend.snapshot.contains("readme.md")
    await engine.shutdown()


@pytest.mark.asyncio
async def test_deleting_rule_file_reconciles(vault_backend):
    engine = make_engine(vault_backend)
    await engine.start()

    vault_backend.remove_path(".obsidianignore")
    await engine.backend.reconcile_deletion(".obsidianignore")
    await engine.wait_idle()

    assert engine.settings.ignore_patterns_content == ""
    assert vault_backend.snapshot.contains("drafts/idea.md")
    await engine.shutdown()


@pytest.mark.asyncio
async def test_folder_rule_matches_query_with_trailing_slash(backend):
    backend.add_file(".obsidianignore", "build/\n")
    backend.add_file("build/out.md")
    async with make_engine(backend) as engine:
        assert await engine.is_ignored("build/")
        assert not await engine.is_ignored("readme.md")
