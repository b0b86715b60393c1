# ============================================================================
# BUILD PIPELINE
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Source bundle to registered function
# PURPOSE: Run the ordered build steps for one function inside a scratch workspace
# CREATED: 12 OCT 2026
# ============================================================================
"""
Build Pipeline

Turns one BuildRequest into a pushed container image and a provider
function. Steps run strictly in order against a BuildContext:

    load_function          Read the function record from the database
    extract_source         Download the zip bundle and unpack it
    prepare_build_context  Install the runtime adapter, write shim + Dockerfile
    build_image            docker build
    push_image             docker push
    remove_local_image     docker rmi (best effort)
    register_with_provider Create or update the provider function

Any step failure aborts the rest and propagates to the caller. Whatever
happens, the database connection is returned and the workspace directory
is removed exactly once.
"""

import asyncio
import logging
import os
import shutil
import tempfile
import zipfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Awaitable, Callable, Optional, Tuple
from urllib.parse import urlsplit

from core.errors import (
    BuildToolError,
    FunctionNotFoundError,
    ProviderRegistrationError,
)
from core.logging import log_checkpoint, log_context
from core.models import BuildRequest, ContainerArtifact, FunctionRecord
from infrastructure.command_runner import CommandRunner
from infrastructure.registry_host import ContainerHostResolver
from infrastructure.storage import BlobRepository
from providers.base import FaasProvider
from providers.registry import ProviderRegistry
from repositories.function_repo import FunctionRepository
from builder.runtimes import RuntimeToolchain, ToolchainRegistry

logger = logging.getLogger(__name__)

RepositoryFactory = Callable[[], Awaitable[FunctionRepository]]


# ============================================================================
# BUILD CONTEXT
# ============================================================================

@dataclass
class BuildContext:
    """State shared by the steps of one build."""
    request: BuildRequest
    workspace: Path
    repository: Optional[FunctionRepository] = None
    record: Optional[FunctionRecord] = None
    toolchain: Optional[RuntimeToolchain] = None
    build_root: Optional[Path] = None
    artifact: Optional[ContainerArtifact] = None
    invoke_url: Optional[str] = None
    func_id: Optional[str] = None
    completed_steps: list = field(default_factory=list)

    @property
    def function_id(self) -> str:
        return self.request.function_id


# ============================================================================
# PIPELINE
# ============================================================================

class BuildPipeline:
    """
    Executes builds. One instance is shared by the worker; all per-build
    state lives in the BuildContext.
    """

    STEPS: Tuple[str, ...] = (
        "load_function",
        "extract_source",
        "prepare_build_context",
        "build_image",
        "push_image",
        "remove_local_image",
        "register_with_provider",
    )

    def __init__(
        self,
        blob_repo: BlobRepository,
        repository_factory: RepositoryFactory,
        providers: ProviderRegistry,
        host_resolver: ContainerHostResolver,
        command_runner: CommandRunner,
        toolchains: Optional[ToolchainRegistry] = None,
        invoke_host_override: Optional[str] = None,
        work_dir: Optional[str] = None,
    ):
        """
        Args:
            blob_repo: Source bundle storage
            repository_factory: Async callable returning a FunctionRepository
            providers: Runtime -> FaaS provider lookup
            host_resolver: Registry host prefix for image tags
            command_runner: Executes npm and docker
            toolchains: Runtime -> toolchain lookup (Node only by default)
            invoke_host_override: Public host that replaces the provider's own
            work_dir: Parent directory for workspaces (system temp if None)
        """
        self._blob_repo = blob_repo
        self._repository_factory = repository_factory
        self._providers = providers
        self._host_resolver = host_resolver
        self._runner = command_runner
        self._toolchains = toolchains or ToolchainRegistry()
        self._invoke_host_override = (invoke_host_override or "").rstrip("/") or None
        self._work_dir = work_dir

    async def build_function(self, request: BuildRequest) -> BuildContext:
        """
        Run every step for one request.

        Returns:
            The finished BuildContext

        Raises:
            Whatever the failing step raised
        """
        workspace = Path(tempfile.mkdtemp(prefix="fnbuild-", dir=self._work_dir))
        ctx = BuildContext(request=request, workspace=workspace)

        with log_context(function_id=request.function_id):
            logger.info(f"Building function {request.function_id} from {request.source_uri}")
            try:
                ctx.repository = await self._repository_factory()
                for step in self.STEPS:
                    with log_context(step=step):
                        await getattr(self, step)(ctx)
                        ctx.completed_steps.append(step)
                        log_checkpoint(step, logger=logger)
            except Exception as e:
                failed_step = (
                    self.STEPS[len(ctx.completed_steps)]
                    if ctx.repository is not None else "acquire_repository"
                )
                logger.warning(f"Function build logic failed at {failed_step}: {type(e).__name__}: {e}")
                raise
            finally:
                await self._release_repository(ctx)
                await self._remove_workspace(workspace)

        logger.info(f"Function {request.function_id} built as {ctx.artifact.image}")
        return ctx

    # ========================================================================
    # STEPS
    # ========================================================================

    async def load_function(self, ctx: BuildContext) -> None:
        record = await ctx.repository.get(ctx.function_id)
        if record is None:
            raise FunctionNotFoundError(ctx.function_id)
        ctx.record = record
        ctx.toolchain = self._toolchains.get(record.runtime)
        logger.debug(f"Loaded function {record.id}: runtime={record.runtime} version={record.version}")

    async def extract_source(self, ctx: BuildContext) -> None:
        loop = asyncio.get_running_loop()
        request = ctx.request

        zip_path = await loop.run_in_executor(
            None,
            self._blob_repo.download_blob_to_directory,
            request.source_container,
            request.source_path,
            ctx.workspace,
        )
        await loop.run_in_executor(None, _unzip, zip_path, ctx.workspace)

        ctx.build_root = ctx.toolchain.find_build_root(ctx.workspace)
        logger.debug(f"Build root: {ctx.build_root}")

    async def prepare_build_context(self, ctx: BuildContext) -> None:
        result = await self._runner.run(
            ctx.toolchain.adapter_install_command(),
            cwd=ctx.build_root,
        )
        if not result.succeeded:
            logger.error(f"Adapter install failed ({result.exit_code}): {result.stderr}")
            raise BuildToolError("Failed to install runtime adapter.", result.exit_code)

        entry_file = ctx.build_root / ctx.toolchain.entry_file_name
        entry_file.write_text(ctx.toolchain.render_entry_point(ctx.record.entry_point))

        dockerfile = ctx.build_root / ctx.toolchain.dockerfile_name
        dockerfile.write_text(ctx.toolchain.render_dockerfile())

    async def build_image(self, ctx: BuildContext) -> None:
        record = ctx.record
        container_host = await self._host_resolver.get_container_host()
        ctx.artifact = ContainerArtifact.for_function(
            container_host, record.account_id, record.name, record.version
        )

        result = await self._runner.run(
            ["docker", "build", "-t", ctx.artifact.image, "-f", ctx.toolchain.dockerfile_name, "."],
            cwd=ctx.build_root,
        )
        if not result.succeeded:
            logger.error(f"docker build failed ({result.exit_code}): {result.stderr}")
            self._log_manifest(ctx)
            raise BuildToolError("Failed to build docker image.", result.exit_code)

    async def push_image(self, ctx: BuildContext) -> None:
        result = await self._runner.run(["docker", "push", ctx.artifact.image])
        if not result.succeeded:
            logger.error(f"docker push failed ({result.exit_code}): {result.stderr}")
            raise BuildToolError("Failed to push docker image.", result.exit_code)

    async def remove_local_image(self, ctx: BuildContext) -> None:
        try:
            result = await self._runner.run(["docker", "rmi", ctx.artifact.image])
            if not result.succeeded:
                logger.debug(f"docker rmi exited {result.exit_code}: {result.stderr}")
        except Exception as e:
            logger.warning(f"Could not remove local image {ctx.artifact.image}: {e}")

    async def register_with_provider(self, ctx: BuildContext) -> None:
        provider = self._providers.get_provider_for_runtime(ctx.record.runtime)
        if ctx.record.is_registered:
            await self._update_function(ctx, provider)
        else:
            await self._create_function(ctx, provider)

    # ========================================================================
    # PROVIDER REGISTRATION
    # ========================================================================

    async def _create_function(self, ctx: BuildContext, provider: FaasProvider) -> None:
        record = ctx.record
        app_id = await self._resolve_app_id(provider, record)

        function = await provider.create_function(record.name, app_id, ctx.artifact.image)
        if not function or not function.get("id"):
            raise ProviderRegistrationError(
                f"{provider.NAME} did not create function {record.name} in app {app_id}"
            )

        ctx.func_id = function["id"]
        ctx.invoke_url = self.build_invoke_url(provider.invoke_endpoint(function))
        if not await ctx.repository.record_registration(record.id, ctx.invoke_url, ctx.func_id):
            raise FunctionNotFoundError(record.id)
        logger.info(f"Created {provider.NAME} function {ctx.func_id} -> {ctx.invoke_url}")

    async def _update_function(self, ctx: BuildContext, provider: FaasProvider) -> None:
        record = ctx.record
        result = await provider.update_function(
            record.func_id, record.provider_app_id, ctx.artifact.image
        )
        if result is None:
            raise ProviderRegistrationError(
                f"{provider.NAME} did not update function {record.func_id}"
            )
        ctx.func_id = record.func_id
        ctx.invoke_url = record.invoke_url
        logger.info(f"Updated {provider.NAME} function {record.func_id} to {ctx.artifact.image}")

    async def _resolve_app_id(self, provider: FaasProvider, record: FunctionRecord) -> str:
        if record.provider_app_id:
            return record.provider_app_id

        app_name = provider.build_app_name(record.account_id)
        app_id = await provider.find_app_id_by_name(app_name)
        if app_id is None:
            logger.info(f"No {provider.NAME} app named {app_name}, creating it")
            app_id = await provider.create_app(app_name)
        if app_id is None:
            raise ProviderRegistrationError(f"Could not create {provider.NAME} app {app_name}")
        return app_id

    def build_invoke_url(self, endpoint: Optional[str]) -> str:
        """
        Public invoke URL for a provider-reported endpoint.

        The endpoint's host is replaced by the configured invoke host when
        one is set; the path is kept.
        """
        if not endpoint:
            raise ProviderRegistrationError("Provider did not report an invoke endpoint")

        parsed = urlsplit(endpoint)
        host = self._invoke_host_override or f"{parsed.scheme}://{parsed.netloc}"
        path = parsed.path.lstrip("/")
        if parsed.query:
            path = f"{path}?{parsed.query}"
        return f"{host}/{path}"

    # ========================================================================
    # HELPERS
    # ========================================================================

    def _log_manifest(self, ctx: BuildContext) -> None:
        manifest = ctx.build_root / ctx.toolchain.manifest_name
        try:
            logger.debug(f"{manifest.name} for failed build:\n{manifest.read_text()}")
        except OSError as e:
            logger.debug(f"Could not read {manifest}: {e}")

    async def _release_repository(self, ctx: BuildContext) -> None:
        """Return the datastore connection; a failure here never fails the build."""
        if ctx.repository is None:
            return
        try:
            await ctx.repository.close()
        except Exception as e:
            logger.warning(f"Could not release database connection: {type(e).__name__}: {e}")
        ctx.repository = None

    async def _remove_workspace(self, workspace: Path) -> None:
        loop = asyncio.get_running_loop()
        await loop.run_in_executor(None, shutil.rmtree, workspace, True)
        if workspace.exists():
            logger.warning(f"Workspace {workspace} was not fully removed")
        else:
            logger.debug(f"Removed workspace {workspace}")


def _unzip(zip_path: Path, directory: Path) -> None:
    with zipfile.ZipFile(zip_path) as archive:
        archive.extractall(directory)
    os.remove(zip_path)


__all__ = [
    "BuildContext",
    "BuildPipeline",
    "RepositoryFactory",
]
