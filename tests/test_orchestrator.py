from __future__ import annotations

import asyncio
import json
import logging

import pytest

from sketch_builder.bundle.orchestrator import BuildContext, BuildOrchestrator
from sketch_builder.errors import AssetCopyError, BundlerError, CompileError, ManifestReadError, ManifestWriteError


def _messages(caplog: pytest.LogCaptureFixture) -> list[str]:
    return [record.getMessage() for record in caplog.records]


def test_build_context_counts_steps() -> None:
    context = BuildContext(total=2)

    assert context.advance() == "[1/2] "
    assert not context.is_complete
    assert context.advance() == "[2/2] "
    assert context.is_complete


def test_build_context_omits_progress_when_watching() -> None:
    context = BuildContext(total=3, watch=True)

    assert context.advance() == ""
    assert context.completed == 1


def test_one_shot_build_writes_bundle(make_project, bundler, caplog) -> None:
    caplog.set_level(logging.INFO, logger="sketch_builder")
    config = make_project(
        skpm={"assets": ["assets/*"], "resources": ["resources/*.js"]},
        assets={"assets/icon.png": "png", "resources/webview.js": "js"},
    )

    report = asyncio.run(BuildOrchestrator(config, bundler).run_generation())

    # open.js, export.js, one resource, one asset, manifest
    assert report.total == 5
    assert report.completed == 5
    assert report.succeeded

    manifest = json.loads(config.emitted_manifest_path.read_text(encoding="utf-8"))
    assert [command["script"] for command in manifest["commands"]] == ["open.js", "open.js", "export.js"]
    assert (config.resources_dir / "icon.png").read_text(encoding="utf-8") == "png"
    assert (config.sketch_dir / "open.js").exists()
    assert (config.compiled_resources_dir / "webview.js").exists()

    open_config = next(item for item in bundler.compiled if item.entry.name == "open.js")
    assert list(open_config.handlers) == ["onRun", "onOpenDocument"]
    assert list(open_config.identifiers) == ["open", "menu"]
    assert open_config.entry == (config.manifest_folder / "open.js").resolve()
    resource_config = next(item for item in bundler.compiled if item.kind == "resource")
    assert resource_config.entry == (config.root / "resources" / "webview.js").resolve()

    messages = _messages(caplog)
    assert any(message.startswith("[1/5] ") and "Copied src/manifest.json" in message for message in messages)
    assert any("Built ./open.js in 3ms" in message for message in messages)
    assert messages[-1] == "Plugin built"


def test_manifest_and_single_asset_complete_build(make_project, bundler) -> None:
    config = make_project(manifest={"commands": []}, skpm={"assets": ["assets/*"]}, assets={"assets/logo.png": "x"})

    report = asyncio.run(BuildOrchestrator(config, bundler).run_generation())

    assert report.total == 2
    assert report.succeeded
    assert report.assets == [config.resources_dir / "logo.png"]
    assert bundler.compiled == []


def test_compile_error_is_fatal_in_one_shot(make_project, bundler, caplog) -> None:
    config = make_project()
    bundler.errors["export.js"] = ["Could not resolve \"./missing\""]

    with pytest.raises(CompileError) as excinfo:
        asyncio.run(BuildOrchestrator(config, bundler).run_generation())

    assert excinfo.value.file == "./export.js"
    assert "Could not resolve \"./missing\"" in _messages(caplog)
    assert "Plugin built" not in _messages(caplog)


def test_bundler_failure_is_fatal_in_one_shot(make_project, bundler) -> None:
    config = make_project()
    bundler.raise_for.add("open.js")

    with pytest.raises(BundlerError):
        asyncio.run(BuildOrchestrator(config, bundler).run_generation())


def test_warnings_hidden_when_quiet(make_project, bundler, caplog) -> None:
    caplog.set_level(logging.INFO, logger="sketch_builder")
    config = make_project()
    bundler.warnings["open.js"] = ["Unused import"]

    asyncio.run(BuildOrchestrator(config, bundler, quiet=True).run_generation())
    assert "Unused import" not in _messages(caplog)

    caplog.clear()
    asyncio.run(BuildOrchestrator(config, bundler).run_generation())
    assert "Unused import" in _messages(caplog)


def test_asset_copy_failure_is_fatal(make_project, bundler) -> None:
    config = make_project(skpm={"assets": ["assets/*"]}, assets={"assets/a.png": "a", "assets/b.png": "b"})
    config.resources_dir.parent.mkdir(parents=True, exist_ok=True)
    config.resources_dir.write_text("blocks the directory", encoding="utf-8")

    with pytest.raises(AssetCopyError):
        asyncio.run(BuildOrchestrator(config, bundler, watch=True).run_generation())
    assert bundler.compiled == []


def test_manifest_write_failure_depends_on_mode(make_project, bundler) -> None:
    config = make_project()
    bundler.write_output = False
    config.sketch_dir.parent.mkdir(parents=True, exist_ok=True)
    config.sketch_dir.write_text("not a directory", encoding="utf-8")

    with pytest.raises(ManifestWriteError):
        asyncio.run(BuildOrchestrator(config, bundler).run_generation())

    async def watch_scenario() -> None:
        orchestrator = BuildOrchestrator(config, bundler, watch=True)
        report = await orchestrator.run_generation()
        assert report.manifest_path is None
        assert len(report.handles) == 2
        await orchestrator.close()

    asyncio.run(watch_scenario())


def test_unreadable_manifest_raises(make_project, bundler) -> None:
    config = make_project()
    config.manifest_path.write_text("{oops", encoding="utf-8")

    with pytest.raises(ManifestReadError):
        asyncio.run(BuildOrchestrator(config, bundler).run_generation())


def test_watch_compile_error_keeps_watcher(make_project, bundler, caplog) -> None:
    caplog.set_level(logging.INFO, logger="sketch_builder")
    config = make_project()
    bundler.errors["open.js"] = ["Syntax error"]

    async def scenario() -> None:
        orchestrator = BuildOrchestrator(config, bundler, watch=True)
        report = await orchestrator.run_generation()

        assert len(orchestrator.handles) == 2
        assert report.handles == orchestrator.handles
        assert "Error while building ./open.js" in _messages(caplog)

        bundler.errors.clear()
        open_handle = next(handle for handle in bundler.handles if handle.config.entry.name == "open.js")
        await open_handle.trigger()
        assert not open_handle.closed
        assert any(message.endswith("Built ./open.js in 3ms") for message in _messages(caplog))
        assert not any(message.startswith("[") for message in _messages(caplog))

        await orchestrator.close()
        assert all(handle.closed for handle in bundler.handles)

    asyncio.run(scenario())


def test_watch_bundler_failure_reported_as_fatal(make_project, bundler) -> None:
    config = make_project()
    failures: list[BaseException] = []

    async def scenario() -> None:
        orchestrator = BuildOrchestrator(config, bundler, watch=True, on_fatal=failures.append)
        await orchestrator.run_generation()
        bundler.raise_for.add("export.js")
        handle = next(handle for handle in bundler.handles if handle.config.entry.name == "export.js")
        await handle.trigger()
        await orchestrator.close()

    asyncio.run(scenario())

    assert len(failures) == 1
    assert isinstance(failures[0], BundlerError)


def test_closed_generation_ignores_late_callbacks(make_project, bundler, caplog) -> None:
    caplog.set_level(logging.INFO, logger="sketch_builder")
    config = make_project()

    async def scenario() -> None:
        orchestrator = BuildOrchestrator(config, bundler, watch=True)
        await orchestrator.run_generation()
        await orchestrator.close()
        caplog.clear()
        await bundler.handles[0].trigger()

    asyncio.run(scenario())

    assert _messages(caplog) == []


def test_close_reaches_every_handle_when_one_fails(make_project, bundler, caplog) -> None:
    config = make_project()

    async def scenario() -> None:
        orchestrator = BuildOrchestrator(config, bundler, watch=True)
        await orchestrator.run_generation()

        async def broken_close() -> None:
            raise NotADirectoryError(20, "Not a directory")

        bundler.handles[0].close = broken_close
        await orchestrator.close()
        assert orchestrator.handles == []

    asyncio.run(scenario())

    assert bundler.closed == ["export.js"]
    assert bundler.handles[1].closed
    assert "Error while closing the watcher of open.js" in _messages(caplog)


def test_watchers_scan_the_workspace_but_not_the_bundle(make_project, bundler) -> None:
    config = make_project()

    async def scenario() -> None:
        orchestrator = BuildOrchestrator(config, bundler, watch=True)
        await orchestrator.run_generation()
        await orchestrator.close()

    asyncio.run(scenario())

    assert {item.watch_root for item in bundler.compiled} == {config.root}
    assert all(tuple(item.watch_exclude) == (config.output_path,) for item in bundler.compiled)
