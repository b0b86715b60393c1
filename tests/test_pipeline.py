# ============================================================================
# BUILD PIPELINE TESTS
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Tests - Pipeline step sequencing and cleanup
# PURPOSE: Verify create/update registration, build failures and workspace cleanup
# CREATED: 16 OCT 2026
# ============================================================================
"""
Build Pipeline Tests

Collaborators are faked at their interfaces: blob downloads write a real
zip into the workspace, commands go through a recording CommandRunner and
the provider/repository are mocks. Workspaces are real directories under
pytest's tmp_path so cleanup can be observed.

Run with:
    pytest tests/test_pipeline.py -v
"""

import asyncio
import shutil
import zipfile
from pathlib import Path
from typing import Dict, List, Optional
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from builder.pipeline import BuildPipeline
from core.contracts import Runtime
from core.errors import (
    BuildToolError,
    FunctionNotFoundError,
    ProviderRegistrationError,
    SourceExtractionError,
    UnknownRuntimeError,
)
from core.models import BuildRequest, FunctionRecord
from infrastructure.command_runner import CommandResult, CommandRunner
from infrastructure.registry_host import ContainerHostResolver
from providers.fn_project import INVOKE_ENDPOINT_ANNOTATION
from providers.registry import ProviderRegistry

PACKAGE_JSON = '{"name": "foo", "version": "1.0.0", "main": "index.js"}'
INDEX_JS = "exports.handler = async (input) => ({ hello: input.name });\n"
INVOKE_ENDPOINT = "http://10.0.0.9:8080/invoke/fn-1"


# ============================================================================
# FAKES
# ============================================================================

class RecordingRunner(CommandRunner):
    """CommandRunner that records calls and answers with scripted exit codes."""

    def __init__(self, exit_codes: Optional[Dict[str, int]] = None, raise_on: Optional[str] = None):
        self.exit_codes = exit_codes or {}
        self.raise_on = raise_on
        self.calls: List[List[str]] = []
        self.cwds: List[Optional[Path]] = []
        self.generated: Dict[str, str] = {}

    async def run(self, args, cwd=None, env=None):
        args = list(args)
        self.calls.append(args)
        self.cwds.append(Path(cwd) if cwd is not None else None)
        key = " ".join(args[:2])

        if key == "docker build":
            for name in ("mdsEntry.js", "MdsDockerfile"):
                self.generated[name] = (Path(cwd) / name).read_text()

        if key == self.raise_on:
            raise OSError(f"{args[0]}: command not found")
        exit_code = self.exit_codes.get(key, 0)
        return CommandResult(exit_code=exit_code, stderr="boom" if exit_code else "")

    def commands(self) -> List[str]:
        return [" ".join(args[:2]) for args in self.calls]


def _zip_downloader(files: Dict[str, str]):
    def download(container, blob_path, directory):
        target = Path(directory) / Path(blob_path).name
        with zipfile.ZipFile(target, "w") as archive:
            for name, content in files.items():
                archive.writestr(name, content)
        return target
    return download


def _record(**overrides) -> FunctionRecord:
    data = {
        "id": "f1",
        "runtime": "NODE",
        "entryPoint": "index:handler",
        "accountId": "42",
        "name": "foo",
        "version": "3",
    }
    data.update(overrides)
    return FunctionRecord.model_validate(data)


def _provider(app_id="app-1", function=None, update_result=None):
    provider = MagicMock()
    provider.NAME = "fake"
    provider.build_app_name.side_effect = lambda account_id: f"mdsFn-{account_id}"
    provider.find_app_id_by_name = AsyncMock(return_value=app_id)
    provider.create_app = AsyncMock(return_value="app-new")
    provider.create_function = AsyncMock(return_value=function if function is not None else {
        "id": "fn-1",
        "annotations": {INVOKE_ENDPOINT_ANNOTATION: INVOKE_ENDPOINT},
    })
    provider.update_function = AsyncMock(return_value=update_result if update_result is not None else {"id": "fn-1"})
    provider.invoke_endpoint.side_effect = lambda fn: (fn.get("annotations") or {}).get(INVOKE_ENDPOINT_ANNOTATION)
    return provider


class PipelineHarness:
    """Builds a pipeline around fakes and exposes them to assertions."""

    def __init__(
        self,
        tmp_path: Path,
        record: Optional[FunctionRecord] = None,
        files: Optional[Dict[str, str]] = None,
        runner: Optional[RecordingRunner] = None,
        provider=None,
        container_host: Optional[str] = None,
        invoke_host_override: Optional[str] = None,
        repository_error: Optional[Exception] = None,
    ):
        self.work_dir = tmp_path / "work"
        self.work_dir.mkdir()

        self.repo = MagicMock()
        self.repo.get = AsyncMock(return_value=record)
        self.repo.record_registration = AsyncMock(return_value=True)
        self.repo.close = AsyncMock()

        if repository_error is not None:
            self.repository_factory = AsyncMock(side_effect=repository_error)
        else:
            self.repository_factory = AsyncMock(return_value=self.repo)

        self.blob_repo = MagicMock()
        self.blob_repo.download_blob_to_directory.side_effect = _zip_downloader(
            files if files is not None else {"package.json": PACKAGE_JSON, "index.js": INDEX_JS}
        )

        self.runner = runner or RecordingRunner()
        self.provider = provider or _provider()

        self.pipeline = BuildPipeline(
            blob_repo=self.blob_repo,
            repository_factory=self.repository_factory,
            providers=ProviderRegistry({Runtime.NODE: lambda: self.provider}),
            host_resolver=ContainerHostResolver(container_host),
            command_runner=self.runner,
            invoke_host_override=invoke_host_override,
            work_dir=str(self.work_dir),
        )
        self.request = BuildRequest(function_id="f1", source_container="c", source_path="p.zip")
        self.rmtree = None

    def build(self):
        """Run build_function with rmtree spied; re-raise pipeline errors."""
        with patch("builder.pipeline.shutil.rmtree", wraps=shutil.rmtree) as rmtree:
            self.rmtree = rmtree
            return asyncio.run(self.pipeline.build_function(self.request))

    def leftover_workspaces(self) -> List[Path]:
        return list(self.work_dir.iterdir())


# ============================================================================
# HAPPY PATHS
# ============================================================================

class TestCreatePath:

    def test_worked_example(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record())
        ctx = harness.build()

        assert ctx.artifact.image == "mds-sf-42/foo:3"
        assert harness.runner.commands() == [
            "npm install",
            "docker build",
            "docker push",
            "docker rmi",
        ]
        assert harness.runner.calls[0] == ["npm", "install", "--save", "@fnproject/fdk"]
        assert harness.runner.calls[1] == [
            "docker", "build", "-t", "mds-sf-42/foo:3", "-f", "MdsDockerfile", ".",
        ]
        assert harness.runner.calls[2] == ["docker", "push", "mds-sf-42/foo:3"]
        assert harness.runner.calls[3] == ["docker", "rmi", "mds-sf-42/foo:3"]

        harness.provider.create_function.assert_awaited_once_with("foo", "app-1", "mds-sf-42/foo:3")
        harness.provider.update_function.assert_not_awaited()
        harness.repo.record_registration.assert_awaited_once_with("f1", INVOKE_ENDPOINT, "fn-1")

    def test_download_uses_request_location(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record())
        harness.build()

        container, blob_path, directory = harness.blob_repo.download_blob_to_directory.call_args.args
        assert (container, blob_path) == ("c", "p.zip")
        assert Path(directory).parent == harness.work_dir

    def test_generated_files(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record())
        harness.build()

        shim = harness.runner.generated["mdsEntry.js"]
        assert "require('@fnproject/fdk')" in shim
        assert "require('./index')" in shim
        assert "userModule.handler(input)" in shim

        dockerfile = harness.runner.generated["MdsDockerfile"]
        assert "RUN npm install --only=prod" in dockerfile
        assert 'ENTRYPOINT ["node", "mdsEntry.js"]' in dockerfile

    def test_zip_is_deleted_after_extraction(self, tmp_path):
        runner = RecordingRunner()
        seen = {}

        original_run = runner.run

        async def run(args, cwd=None, env=None):
            if list(args[:2]) == ["npm", "install"]:
                seen["entries"] = sorted(p.name for p in Path(cwd).iterdir())
            return await original_run(args, cwd=cwd, env=env)

        runner.run = run
        harness = PipelineHarness(tmp_path, record=_record(), runner=runner)
        harness.build()

        assert seen["entries"] == ["index.js", "package.json"]

    def test_nested_bundle_uses_first_entry(self, tmp_path):
        harness = PipelineHarness(
            tmp_path,
            record=_record(),
            files={"myfn/package.json": PACKAGE_JSON, "myfn/index.js": INDEX_JS},
        )
        ctx = harness.build()

        assert ctx.build_root.name == "myfn"
        assert harness.runner.cwds[0].name == "myfn"

    def test_macos_metadata_skipped_for_build_root(self, tmp_path):
        harness = PipelineHarness(
            tmp_path,
            record=_record(),
            files={
                "__MACOSX/myfn/._index.js": "",
                ".DS_Store": "",
                "myfn/package.json": PACKAGE_JSON,
                "myfn/index.js": INDEX_JS,
            },
        )
        ctx = harness.build()

        assert ctx.build_root.name == "myfn"

    def test_only_metadata_is_empty_bundle(self, tmp_path):
        harness = PipelineHarness(
            tmp_path,
            record=_record(),
            files={"__MACOSX/._index.js": "", ".DS_Store": ""},
        )

        with pytest.raises(SourceExtractionError):
            harness.build()

        assert harness.leftover_workspaces() == []

    def test_container_host_prefixes_tag(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record(), container_host="10.0.0.5:5000")
        ctx = harness.build()
        assert ctx.artifact.image == "10.0.0.5:5000/mds-sf-42/foo:3"

    def test_tag_is_lowercased(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record(name="MyFunc", accountId="AbC"))
        ctx = harness.build()
        assert ctx.artifact.image == "mds-sf-abc/myfunc:3"

    def test_invoke_host_override(self, tmp_path):
        harness = PipelineHarness(
            tmp_path,
            record=_record(),
            invoke_host_override="https://functions.example.com/",
        )
        harness.build()
        harness.repo.record_registration.assert_awaited_once_with(
            "f1", "https://functions.example.com/invoke/fn-1", "fn-1"
        )

    def test_existing_app_id_skips_lookup(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record(providerAppId="app-7"))
        harness.build()

        harness.provider.find_app_id_by_name.assert_not_awaited()
        harness.provider.create_function.assert_awaited_once_with("foo", "app-7", "mds-sf-42/foo:3")

    def test_missing_app_is_created(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record(), provider=_provider(app_id=None))
        harness.build()

        harness.provider.find_app_id_by_name.assert_awaited_once_with("mdsFn-42")
        harness.provider.create_app.assert_awaited_once_with("mdsFn-42")
        harness.provider.create_function.assert_awaited_once_with("foo", "app-new", "mds-sf-42/foo:3")


class TestUpdatePath:

    def test_update_called_once_and_record_untouched(self, tmp_path):
        record = _record(funcId="fn-1", providerAppId="app-1", invokeUrl="http://fn/invoke/fn-1")
        harness = PipelineHarness(tmp_path, record=record)
        ctx = harness.build()

        harness.provider.update_function.assert_awaited_once_with("fn-1", "app-1", "mds-sf-42/foo:3")
        harness.provider.create_function.assert_not_awaited()
        harness.provider.create_app.assert_not_awaited()
        harness.repo.record_registration.assert_not_awaited()
        assert ctx.invoke_url == "http://fn/invoke/fn-1"

    def test_update_soft_failure_raises(self, tmp_path):
        provider = _provider()
        provider.update_function = AsyncMock(return_value=None)
        harness = PipelineHarness(tmp_path, record=_record(funcId="fn-1"), provider=provider)

        with pytest.raises(ProviderRegistrationError):
            harness.build()


# ============================================================================
# FAILURES
# ============================================================================

class TestFailures:

    def test_build_failure_raises_fixed_error(self, tmp_path):
        harness = PipelineHarness(
            tmp_path,
            record=_record(),
            runner=RecordingRunner(exit_codes={"docker build": 1}),
        )

        with pytest.raises(BuildToolError) as exc_info:
            harness.build()

        assert str(exc_info.value) == "Failed to build docker image."
        assert exc_info.value.exit_code == 1
        assert "docker push" not in harness.runner.commands()
        harness.provider.create_function.assert_not_awaited()

    def test_push_failure_raises_fixed_error(self, tmp_path):
        harness = PipelineHarness(
            tmp_path,
            record=_record(),
            runner=RecordingRunner(exit_codes={"docker push": 1}),
        )

        with pytest.raises(BuildToolError, match="^Failed to push docker image.$"):
            harness.build()
        assert "docker rmi" not in harness.runner.commands()

    def test_adapter_install_failure(self, tmp_path):
        harness = PipelineHarness(
            tmp_path,
            record=_record(),
            runner=RecordingRunner(exit_codes={"npm install": 254}),
        )

        with pytest.raises(BuildToolError):
            harness.build()
        assert harness.runner.commands() == ["npm install"]

    def test_rmi_nonzero_exit_is_tolerated(self, tmp_path):
        harness = PipelineHarness(
            tmp_path,
            record=_record(),
            runner=RecordingRunner(exit_codes={"docker rmi": 1}),
        )
        harness.build()
        harness.provider.create_function.assert_awaited_once()

    def test_rmi_exception_is_tolerated(self, tmp_path):
        harness = PipelineHarness(
            tmp_path,
            record=_record(),
            runner=RecordingRunner(raise_on="docker rmi"),
        )
        harness.build()
        harness.repo.record_registration.assert_awaited_once()

    def test_function_not_found(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=None)

        with pytest.raises(FunctionNotFoundError):
            harness.build()
        harness.blob_repo.download_blob_to_directory.assert_not_called()

    def test_unknown_runtime(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record(runtime="python"))

        with pytest.raises(UnknownRuntimeError):
            harness.build()
        assert harness.runner.calls == []

    def test_empty_bundle(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record(), files={})

        with pytest.raises(SourceExtractionError):
            harness.build()

    def test_app_creation_failure_is_typed(self, tmp_path):
        provider = _provider(app_id=None)
        provider.create_app = AsyncMock(return_value=None)
        harness = PipelineHarness(tmp_path, record=_record(), provider=provider)

        with pytest.raises(ProviderRegistrationError):
            harness.build()
        provider.create_function.assert_not_awaited()

    def test_function_creation_failure_is_typed(self, tmp_path):
        provider = _provider()
        provider.create_function = AsyncMock(return_value=None)
        harness = PipelineHarness(tmp_path, record=_record(), provider=provider)

        with pytest.raises(ProviderRegistrationError):
            harness.build()
        harness.repo.record_registration.assert_not_awaited()


# ============================================================================
# CLEANUP
# ============================================================================

class TestCleanup:

    def test_workspace_removed_once_on_success(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record())
        ctx = harness.build()

        harness.rmtree.assert_called_once()
        assert Path(harness.rmtree.call_args.args[0]) == ctx.workspace
        assert not ctx.workspace.exists()
        assert harness.leftover_workspaces() == []
        harness.repo.close.assert_awaited_once()

    @pytest.mark.parametrize("failing_command", ["npm install", "docker build", "docker push"])
    def test_workspace_removed_once_on_command_failure(self, tmp_path, failing_command):
        harness = PipelineHarness(
            tmp_path,
            record=_record(),
            runner=RecordingRunner(exit_codes={failing_command: 1}),
        )

        with pytest.raises(BuildToolError):
            harness.build()

        harness.rmtree.assert_called_once()
        assert harness.leftover_workspaces() == []
        harness.repo.close.assert_awaited_once()

    def test_workspace_removed_when_record_missing(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=None)

        with pytest.raises(FunctionNotFoundError):
            harness.build()

        harness.rmtree.assert_called_once()
        assert harness.leftover_workspaces() == []

    def test_workspace_removed_when_repository_unavailable(self, tmp_path):
        harness = PipelineHarness(tmp_path, repository_error=OSError("connection refused"))

        with pytest.raises(OSError):
            harness.build()

        harness.rmtree.assert_called_once()
        assert harness.leftover_workspaces() == []
        harness.repo.close.assert_not_awaited()

    def test_workspace_removed_when_registration_fails(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record())
        harness.repo.record_registration = AsyncMock(side_effect=RuntimeError("replica unavailable"))

        with pytest.raises(RuntimeError):
            harness.build()

        harness.rmtree.assert_called_once()
        assert harness.leftover_workspaces() == []
        harness.repo.close.assert_awaited_once()

    def test_repository_close_failure_does_not_fail_build(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record())
        harness.repo.close = AsyncMock(side_effect=RuntimeError("pool closed"))

        ctx = harness.build()

        assert ctx.func_id == "fn-1"
        harness.repo.record_registration.assert_awaited_once()
        harness.rmtree.assert_called_once()
        assert harness.leftover_workspaces() == []

    def test_repository_close_failure_keeps_step_error(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=None)
        harness.repo.close = AsyncMock(side_effect=RuntimeError("pool closed"))

        with pytest.raises(FunctionNotFoundError):
            harness.build()

        harness.rmtree.assert_called_once()
        assert harness.leftover_workspaces() == []

    def test_deleted_record_fails_registration(self, tmp_path):
        harness = PipelineHarness(tmp_path, record=_record())
        harness.repo.record_registration = AsyncMock(return_value=False)

        with pytest.raises(FunctionNotFoundError):
            harness.build()

        harness.provider.create_function.assert_awaited_once()
        assert harness.leftover_workspaces() == []


# ============================================================================
# INVOKE URL
# ============================================================================

class TestInvokeUrl:

    def _pipeline(self, override=None):
        return BuildPipeline(
            blob_repo=MagicMock(),
            repository_factory=AsyncMock(),
            providers=ProviderRegistry(),
            host_resolver=ContainerHostResolver(None),
            command_runner=RecordingRunner(),
            invoke_host_override=override,
        )

    def test_endpoint_host_kept_without_override(self):
        assert self._pipeline().build_invoke_url(INVOKE_ENDPOINT) == INVOKE_ENDPOINT

    def test_override_replaces_host(self):
        url = self._pipeline("https://fn.example.com").build_invoke_url(INVOKE_ENDPOINT)
        assert url == "https://fn.example.com/invoke/fn-1"

    def test_query_string_kept(self):
        url = self._pipeline("https://fn.example.com").build_invoke_url("http://h:8080/invoke/fn-1?x=1")
        assert url == "https://fn.example.com/invoke/fn-1?x=1"

    def test_missing_endpoint_raises(self):
        with pytest.raises(ProviderRegistrationError):
            self._pipeline().build_invoke_url(None)
