import logging

import pytest
from conftest import RecordingBackend, known

from advanced_exclude.cancellation import CancellationToken
from advanced_exclude.exclusion_rules import CompositeExclusionRules, ExcludeFilterRules, GitIgnoreExclusionRules
from advanced_exclude.reconciler import ReconcileProgress, TreeReconciler
from advanced_exclude.types import ROOT_PATH, ExcludeMode

RULES = "drafts/\n*.tmp\n!keep.tmp\n"


class Harness:
    """A reconciler over a recording backend with a switchable mode."""

    def __init__(self, backend, rules=RULES, mode=ExcludeMode.FULL, filters=()):
        self.backend = backend
        self.mode = mode
        self.rules = CompositeExclusionRules(
            [GitIgnoreExclusionRules.from_content(rules), ExcludeFilterRules(list(filters))]
        )
        self.reconciler = TreeReconciler(
            backend, backend.snapshot, backend.presentation, self.is_ignored, lambda: self.mode
        )

    async def is_ignored(self, path, is_folder):
        return self.rules.exclude_entry(path, is_folder)

    async def run(self, **kwargs):
        return await self.reconciler.reconcile(ROOT_PATH, **kwargs)


@pytest.mark.asyncio
async def test_first_run_full_mode(vault_backend):
    harness = Harness(vault_backend)

    assert await harness.run()

    assert vault_backend.mutations() == [
        ("create_file", "readme.md"),
        ("create_folder", "notes"),
        ("create_file", "notes/keep.tmp"),
        ("create_file", "notes/today.md"),
    ]
    assert vault_backend.snapshot.paths() == ["notes", "notes/keep.tmp", "notes/today.md", "readme.md"]
    assert ("list", "drafts") not in vault_backend.calls


@pytest.mark.asyncio
@pytest.mark.parametrize("mode", [ExcludeMode.FULL, ExcludeMode.FILES_PANE])
async def test_second_run_is_idempotent(vault_backend, mode):
    harness = Harness(vault_backend, mode=mode)
    await harness.run()
    mutations = list(vault_backend.mutations())
    presentation_calls = list(vault_backend.presentation.calls)

    assert await harness.run()

    assert vault_backend.mutations() == mutations
    assert vault_backend.presentation.calls == presentation_calls


@pytest.mark.asyncio
async def test_orphan_cleanup(backend):
    backend.add_file("new.md")
    known(backend, "old.md")
    harness = Harness(backend)

    await harness.run()

    assert backend.mutations() == [("create_file", "new.md"), ("delete", "old.md")]
    assert not backend.snapshot.contains("old.md")

    await harness.run()
    assert backend.mutations().count(("delete", "old.md")) == 1
    assert ("create_file", "old.md") not in backend.mutations()


@pytest.mark.asyncio
async def test_orphans_in_subfolders(backend):
    backend.add_file("notes/today.md")
    known(backend, "notes/", "notes/today.md", "notes/gone.md", "notes/sub/", "notes/sub/deep.md")
    harness = Harness(backend)

    await harness.run()

    assert backend.mutations() == [("delete", "notes/gone.md"), ("delete", "notes/sub")]
    assert backend.snapshot.paths() == ["notes", "notes/today.md"]


@pytest.mark.asyncio
async def test_full_mode_deletes_known_excluded_entries(vault_backend):
    known(vault_backend, "drafts/", "drafts/idea.md", "notes/", "notes/scratch.tmp")
    harness = Harness(vault_backend)

    await harness.run()

    assert ("delete", "drafts") in vault_backend.mutations()
    assert ("delete", "notes/scratch.tmp") in vault_backend.mutations()
    assert not vault_backend.snapshot.contains("drafts/idea.md")
    assert ("list", "drafts") not in vault_backend.calls


@pytest.mark.asyncio
async def test_files_pane_mode_hides_excluded_entries(vault_backend):
    harness = Harness(vault_backend, mode=ExcludeMode.FILES_PANE)

    await harness.run()

    snapshot = vault_backend.snapshot
    presentation = vault_backend.presentation
    assert snapshot.contains("drafts")
    assert snapshot.contains("drafts/idea.md")
    assert snapshot.contains("notes/scratch.tmp")
    assert not presentation.contains("drafts")
    assert not presentation.contains("drafts/idea.md")
    assert not presentation.contains("notes/scratch.tmp")
    assert presentation.contains("notes/today.md")
    assert presentation.contains("notes/keep.tmp")
    assert not any(call[0] == "delete" for call in vault_backend.mutations())


@pytest.mark.asyncio
async def test_files_pane_mode_reinserts_included_entries(vault_backend):
    known(vault_backend, "readme.md")
    vault_backend.presentation.remove("readme.md")
    vault_backend.presentation.calls.clear()
    harness = Harness(vault_backend, mode=ExcludeMode.FILES_PANE)

    await harness.run()

    assert ("insert", "readme.md") in vault_backend.presentation.calls
    assert ("create_file", "readme.md") not in vault_backend.mutations()


@pytest.mark.asyncio
async def test_full_mode_leaves_presentation_alone(vault_backend):
    known(vault_backend, "readme.md")
    vault_backend.presentation.remove("readme.md")
    vault_backend.presentation.calls.clear()
    harness = Harness(vault_backend)

    await harness.run()

    assert ("insert", "readme.md") not in vault_backend.presentation.calls


@pytest.mark.asyncio
async def test_switching_files_pane_to_full(vault_backend):
    harness = Harness(vault_backend, mode=ExcludeMode.FILES_PANE)
    await harness.run()
    before = len(vault_backend.mutations())

    harness.mode = ExcludeMode.FULL
    await harness.run()

    assert vault_backend.mutations()[before:] == [("delete", "drafts"), ("delete", "notes/scratch.tmp")]


@pytest.mark.asyncio
async def test_switching_full_to_files_pane(vault_backend):
    harness = Harness(vault_backend)
    await harness.run()

    harness.mode = ExcludeMode.FILES_PANE
    await harness.run()

    assert vault_backend.snapshot.contains("drafts/idea.md")
    assert not vault_backend.presentation.contains("drafts/idea.md")
    assert not vault_backend.presentation.contains("notes/scratch.tmp")


@pytest.mark.asyncio
async def test_exclude_filters_apply(vault_backend):
    harness = Harness(vault_backend, rules="", filters=["/^notes\\/today/"])

    await harness.run()

    assert vault_backend.snapshot.contains("notes/keep.tmp")
    assert not vault_backend.snapshot.contains("notes/today.md")


@pytest.mark.asyncio
async def test_hidden_entries_are_skipped(backend):
    backend.add_file(".obsidianignore", "")
    backend.add_file(".trash/old.md")
    backend.add_file("notes/.draft.md")
    known(backend, ".trash/")
    harness = Harness(backend, rules="")

    await harness.run()

    assert backend.mutations() == [("create_folder", "notes")]
    assert backend.snapshot.contains(".trash")
    assert ("list", ".trash") not in backend.calls


@pytest.mark.asyncio
async def test_entry_failure_does_not_stop_walk(vault_backend, caplog):
    vault_backend.failing_paths.add("readme.md")
    harness = Harness(vault_backend)

    with caplog.at_level(logging.ERROR, logger="advanced_exclude"):
        assert await harness.run()

    assert "Failed reconciling readme.md" in caplog.text
    assert vault_backend.snapshot.contains("notes/today.md")
    assert not vault_backend.snapshot.contains("readme.md")


@pytest.mark.asyncio
async def test_failed_folder_creation_skips_recursion(vault_backend):
    vault_backend.failing_paths.add("notes")
    harness = Harness(vault_backend)

    assert await harness.run()

    assert ("list", "notes") not in vault_backend.calls
    assert vault_backend.snapshot.paths() == ["readme.md"]


@pytest.mark.asyncio
async def test_failed_orphan_deletion_is_logged(backend, caplog):
    known(backend, "old.md", "older.md")
    backend.failing_paths.add("old.md")
    harness = Harness(backend)

    assert await harness.run()

    assert "Failed cleaning orphan old.md" in caplog.text
    assert ("delete", "older.md") in backend.mutations()


@pytest.mark.asyncio
async def test_listing_failure_is_logged(vault_backend, caplog):
    async def fail_notes(folder):
        if folder == "notes":
            raise PermissionError("denied")

    vault_backend.on_list = fail_notes
    harness = Harness(vault_backend)

    progress = ReconcileProgress()
    assert await harness.run(progress=progress)

    assert "Failed listing folder notes" in caplog.text
    assert vault_backend.snapshot.contains("notes")
    assert progress.completed == progress.total


@pytest.mark.asyncio
async def test_unregistered_folder_is_not_visited():
    class ForgetfulBackend(RecordingBackend):
        async def reconcile_folder_creation(self, path):
            self.calls.append(("create_folder", path))

    backend = ForgetfulBackend()
    backend.add_file("notes/today.md")
    harness = Harness(backend)

    assert await harness.run()

    assert backend.mutations() == [("create_folder", "notes")]
    assert ("list", "notes") not in backend.calls


@pytest.mark.asyncio
async def test_progress(vault_backend):
    harness = Harness(vault_backend)
    updates = []
    progress = ReconcileProgress()

    await harness.run(progress=progress, on_progress=updates.append)

    assert progress.completed == progress.total == 9
    assert updates[-1] == progress
    assert updates[-1] is not progress
    for previous, current in zip(updates, updates[1:]):
        assert current.completed >= previous.completed
        assert current.total >= previous.total
    assert all(update.completed <= update.total for update in updates)


@pytest.mark.asyncio
async def test_progress_counts_orphans(backend):
    known(backend, "old.md")
    harness = Harness(backend)
    progress = ReconcileProgress()

    await harness.run(progress=progress)

    assert progress.total == 2
    assert progress.completed == 2


def test_progress_fraction():
    assert ReconcileProgress().fraction == 0.0
    assert ReconcileProgress(completed=1, total=4).fraction == 0.25


@pytest.mark.asyncio
async def test_cancelled_before_start(vault_backend):
    token = CancellationToken()
    token.cancel()
    harness = Harness(vault_backend)

    assert not await harness.run(token=token)
    assert vault_backend.calls == []


@pytest.mark.asyncio
async def test_cancellation_stops_before_next_child():
    token = CancellationToken()

    class CancellingBackend(RecordingBackend):
        async def reconcile_file_creation(self, path):
            await super().reconcile_file_creation(path)
            token.cancel()

    backend = CancellingBackend()
    backend.add_file("a.md")
    backend.add_file("b.md")
    backend.add_file("notes/c.md")
    harness = Harness(backend)

    assert not await harness.run(token=token)
    assert backend.mutations() == [("create_file", "a.md")]


@pytest.mark.asyncio
async def test_cancellation_during_listing(vault_backend):
    token = CancellationToken()

    async def cancel_on_notes(folder):
        if folder == "notes":
            token.cancel()

    vault_backend.on_list = cancel_on_notes
    harness = Harness(vault_backend)

    assert not await harness.run(token=token)
    assert not any(path.startswith("notes/") for _, path in vault_backend.mutations())


@pytest.mark.asyncio
async def test_cancellation_before_orphans():
    token = CancellationToken()

    class CancellingBackend(RecordingBackend):
        async def reconcile_file_creation(self, path):
            await super().reconcile_file_creation(path)
            token.cancel()

    cancelling = CancellingBackend()
    cancelling.add_file("new.md")
    known(cancelling, "old.md")
    harness = Harness(cancelling)

    assert not await harness.run(token=token)
    assert ("delete", "old.md") not in cancelling.mutations()


@pytest.mark.asyncio
async def test_file_replaced_by_folder(backend):
    known(backend, "build")
    backend.add_file("build/out.md")
    harness = Harness(backend, rules="")

    await harness.run()

    assert backend.mutations() == [
        ("delete", "build"),
        ("create_folder", "build"),
        ("create_file", "build/out.md"),
    ]
    assert backend.snapshot.is_folder("build")
    assert backend.snapshot.children_paths("build") == ["build/out.md"]

    backend.remove_path("build/out.md")
    await harness.run()
    assert backend.mutations()[-1] == ("delete", "build/out.md")


@pytest.mark.asyncio
async def test_folder_replaced_by_file(backend):
    known(backend, "build/", "build/stale.md")
    backend.add_file("build")
    harness = Harness(backend, rules="")

    await harness.run()

    assert backend.mutations() == [("delete", "build"), ("create_file", "build")]
    assert backend.snapshot.paths() == ["build"]
    assert not backend.snapshot.is_folder("build")
