"""
Sandboxed command execution in throwaway Docker containers.

The workspace is mounted read-only, networking is disabled and memory is
capped. The container is removed on every path, and `execute_command` never
raises: failures come back as an ExecutionResult.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import aiodocker
from aiodocker.exceptions import DockerError

from ..cancellation import CancellationToken
from ..config import SandboxConfig
from ..errors import FixoError, SandboxSetupError
from .runtime import Runtime, get_runtime_image

logger = logging.getLogger(__name__)

TIMEOUT_OUTPUT = "Command execution timed out"
_NO_SUCH_CONTAINER = "No such container"


@dataclass
class ExecutionRequest:
    runtime: Runtime | str
    workspace_path: str | Path
    command: str
    timeout: float | None = None
    memory_limit: int | None = None


@dataclass
class ExecutionResult:
    success: bool
    output: str
    exit_code: int | None = None

    @classmethod
    def failure(cls, error: BaseException | str) -> ExecutionResult:
        return cls(success=False, output=f"Error: {_error_message(error)}", exit_code=None)


def _error_message(error: BaseException | str) -> str:
    if isinstance(error, DockerError):
        return str(error.message)
    if isinstance(error, FixoError):
        return error.message
    return str(error)


class SandboxExecutor:
    """
    Runs shell commands inside a runtime container.

    Example:
        ```python
        executor = SandboxExecutor(settings.sandbox)
        result = await executor.execute_command(
            ExecutionRequest(runtime="node", workspace_path=repo_path, command="npm test")
        )
        await executor.close()
        ```
    """

    def __init__(self, config: SandboxConfig | None = None, *, docker: Any | None = None) -> None:
        self.config = config or SandboxConfig()
        self._docker = docker
        self._owns_client = docker is None

    @property
    def docker(self) -> Any:
        if self._docker is None:
            self._docker = aiodocker.Docker(url=self.config.docker_url)
        return self._docker

    async def close(self) -> None:
        if self._owns_client and self._docker is not None:
            await self._docker.close()
            self._docker = None

    async def __aenter__(self) -> SandboxExecutor:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    # === Public API ===

    async def execute_command(self, request: ExecutionRequest) -> ExecutionResult:
        timeout = request.timeout or self.config.default_timeout
        memory_limit = request.memory_limit or self.config.memory_limit

        logger.info(
            "Executing command in container: runtime=%s command=%r timeout=%s memory_limit=%d",
            getattr(request.runtime, "value", request.runtime),
            request.command,
            timeout,
            memory_limit,
        )

        try:
            container = await self._create_container(request, memory_limit)
        except SandboxSetupError as e:
            logger.error("Failed to execute command in container (setup phase): %s", e.message)
            return ExecutionResult.failure(e)

        try:
            await container.start()
            return await self._race(container, timeout)
        except (DockerError, OSError) as e:
            logger.error("Failed to start container %s: %s", container.id, e)
            return ExecutionResult.failure(e)
        finally:
            await self._remove(container)

    async def check_docker_availability(self) -> bool:
        try:
            await self.docker.system.info()
        except (DockerError, OSError) as e:
            logger.error("Docker is not available: %s", e)
            return False
        logger.info("Docker is available")
        return True

    async def list_images(self) -> list[str]:
        try:
            images = await self.docker.images.list()
        except (DockerError, OSError) as e:
            logger.error("Failed to list Docker images: %s", e)
            return []
        return [image["RepoTags"][0] for image in images if image.get("RepoTags")]

    # === Internals ===

    async def _create_container(self, request: ExecutionRequest, memory_limit: int) -> Any:
        """
        Pull the runtime image and create the container.

        Raises:
            SandboxSetupError: If the image cannot be resolved or pulled, or creation fails
        """
        try:
            image = get_runtime_image(request.runtime, self.config.runtime_prefix)
            logger.info("Ensuring Docker image exists: %s", image)
            await self.docker.images.pull(image)
            return await self.docker.containers.create(config=self._container_config(image, request, memory_limit))
        except (DockerError, OSError, ValueError) as e:
            raise SandboxSetupError(_error_message(e), cause=e) from e

    def _container_config(self, image: str, request: ExecutionRequest, memory_limit: int) -> dict[str, Any]:
        mount = self.config.workspace_mount
        return {
            "Image": image,
            "Cmd": ["sh", "-c", request.command],
            "WorkingDir": mount,
            "HostConfig": {
                "Binds": [f"{Path(request.workspace_path).resolve()}:{mount}:ro"],
                "Memory": memory_limit,
                "MemorySwap": memory_limit,
                "NetworkMode": "none",
            },
        }

    async def _race(self, container: Any, timeout: float) -> ExecutionResult:
        token = CancellationToken()
        run_task = asyncio.create_task(self._wait_and_collect(container, token))
        timer_task = asyncio.create_task(self._kill_after(container, timeout, token))
        tasks = (run_task, timer_task)

        try:
            await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
            if token.is_cancelled:
                run_task.cancel()
                await asyncio.gather(run_task, return_exceptions=True)
                return await timer_task
            return run_task.result()
        finally:
            # No branch outlives the race, even when the caller is cancelled
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

    async def _wait_and_collect(self, container: Any, token: CancellationToken) -> ExecutionResult:
        try:
            status = await container.wait()
            logs = await container.log(stdout=True, stderr=True)
        except (DockerError, OSError) as e:
            if not token.is_cancelled and _NO_SUCH_CONTAINER not in _error_message(e):
                logger.error("Error waiting for container or getting logs: %s", e)
            return ExecutionResult.failure(e)

        exit_code = status.get("StatusCode")
        return ExecutionResult(success=exit_code == 0, output="".join(logs), exit_code=exit_code)

    async def _kill_after(self, container: Any, timeout: float, token: CancellationToken) -> ExecutionResult:
        await asyncio.sleep(timeout)
        token.cancel("timeout")
        try:
            await container.kill()
        except (DockerError, OSError) as e:
            logger.warning("Failed to kill container on timeout, maybe already stopped: %s", e)
        return ExecutionResult(success=False, output=TIMEOUT_OUTPUT, exit_code=None)

    async def _remove(self, container: Any) -> None:
        logger.debug("Ensuring container removal: %s", container.id)
        try:
            await container.delete(force=True)
        except (DockerError, OSError) as e:
            if _NO_SUCH_CONTAINER not in _error_message(e):
                logger.error("Failed to remove container %s: %s", container.id, e)
            return
        logger.info("Container removed successfully: %s", container.id)


async def execute_command(
    request: ExecutionRequest,
    *,
    config: SandboxConfig | None = None,
    docker: Any | None = None,
) -> ExecutionResult:
    """One-off convenience wrapper around SandboxExecutor."""
    async with SandboxExecutor(config, docker=docker) as executor:
        return await executor.execute_command(request)


__all__ = [
    "ExecutionRequest",
    "ExecutionResult",
    "SandboxExecutor",
    "execute_command",
    "TIMEOUT_OUTPUT",
]
