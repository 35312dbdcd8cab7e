from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, AsyncIterator, Callable, Dict, Iterable, Optional
import asyncio
import json

import docker
from docker.errors import APIError, DockerException, ImageNotFound, NotFound

from buildkeeper.common.config.logging_config import get_logger
from buildkeeper.common.exceptions.engine_exceptions import (
    EngineException,
    EngineUnavailableError,
    ImageNotFoundError,
    ContainerOperationError,
)


logger = get_logger(__name__)


@dataclass(frozen=True)
class ContainerInspection:
    container_id: str
    network_address: str
    running: bool = True


class ContainerEngine(ABC):
    """The capabilities a build needs from a container engine."""

    @abstractmethod
    async def pull_image(self, reference: str) -> AsyncIterator[bytes]:
        raise NotImplementedError("Subclasses must implement pull_image method")

    @abstractmethod
    async def create_container(self, reference: str) -> str:
        raise NotImplementedError("Subclasses must implement create_container method")

    @abstractmethod
    async def start_container(self, container_id: str) -> None:
        raise NotImplementedError("Subclasses must implement start_container method")

    @abstractmethod
    async def inspect_container(self, container_id: str) -> ContainerInspection:
        raise NotImplementedError("Subclasses must implement inspect_container method")

    async def close(self) -> None:
        return None


class DockerContainerEngine(ContainerEngine):
    """Docker engine client. SDK calls block, so each one runs in a worker thread."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout_seconds: int = 120,
    ):
        self._base_url = base_url
        self._timeout = timeout_seconds
        self._client: Optional[docker.APIClient] = None

    def _get_client(self) -> docker.APIClient:
        if self._client is None:
            try:
                if self._base_url:
                    self._client = docker.APIClient(base_url=self._base_url, timeout=self._timeout)
                else:
                    self._client = docker.from_env(timeout=self._timeout).api
            except DockerException as e:
                raise EngineUnavailableError(
                    message=f"Cannot connect to Docker: {e}",
                    operation="connect",
                    cause=e,
                )
            logger.info(f"Connected to Docker at {self._client.base_url}")
        return self._client

    async def _call(
        self,
        operation: str,
        func: Callable[..., Any],
        *args: Any,
        container_id: Optional[str] = None,
        image_reference: Optional[str] = None,
        **kwargs: Any,
    ) -> Any:
        try:
            return await asyncio.to_thread(func, *args, **kwargs)
        except ImageNotFound as e:
            raise ImageNotFoundError(image_reference or str(args[0]), message=str(e), cause=e)
        except NotFound as e:
            if operation == "pull":
                raise ImageNotFoundError(image_reference or str(args[0]), message=str(e), cause=e)
            raise ContainerOperationError(
                message=str(e),
                operation=operation,
                container_id=container_id,
                image_reference=image_reference,
                cause=e,
            )
        except APIError as e:
            raise ContainerOperationError(
                message=f"Docker {operation} failed: {e.explanation or e}",
                operation=operation,
                container_id=container_id,
                image_reference=image_reference,
                cause=e,
            )
        except DockerException as e:
            raise EngineUnavailableError(
                message=f"Docker {operation} failed: {e}",
                operation=operation,
                cause=e,
            )

    async def pull_image(self, reference: str) -> AsyncIterator[bytes]:
        client = await self._call("connect", self._get_client)
        stream = await self._call(
            "pull",
            client.pull,
            reference,
            stream=True,
            image_reference=reference,
        )
        logger.debug(f"Pull started for {reference}")
        return self._iterate_pull(stream, reference)

    async def _iterate_pull(
        self,
        stream: Iterable[bytes],
        reference: str,
    ) -> AsyncIterator[bytes]:
        chunks = iter(stream)
        try:
            while True:
                chunk = await self._call("pull", next, chunks, None, image_reference=reference)
                if chunk is None:
                    break
                self._raise_for_pull_error(chunk, reference)
                yield chunk
        finally:
            # Releases the HTTP response when the reader stops early.
            await asyncio.to_thread(self._close_pull_stream, stream, reference)

    @staticmethod
    def _close_pull_stream(stream: Iterable[bytes], reference: str) -> None:
        close = getattr(stream, "close", None)
        if close is None:
            return
        try:
            close()
        except ValueError:
            # A cancelled read may still be running in its worker thread.
            logger.warning(f"Pull stream for {reference} still busy, connection released when the read ends")

    def _raise_for_pull_error(self, chunk: bytes, reference: str) -> None:
        for raw_line in chunk.splitlines():
            try:
                message = json.loads(raw_line)
            except (ValueError, UnicodeDecodeError):
                continue
            if not isinstance(message, dict) or "error" not in message:
                continue

            error = str(message["error"])
            lowered = error.lower()
            if "not found" in lowered or "does not exist" in lowered or "pull access denied" in lowered:
                raise ImageNotFoundError(reference, message=error)
            raise EngineException(
                message=f"Docker pull failed: {error}",
                operation="pull",
                image_reference=reference,
            )

    async def create_container(self, reference: str) -> str:
        client = await self._call("connect", self._get_client)
        response = await self._call(
            "create",
            client.create_container,
            image=reference,
            image_reference=reference,
        )
        container_id = response["Id"]
        for warning in response.get("Warnings") or []:
            logger.warning(f"Docker create warning for {reference}: {warning}")
        return container_id

    async def start_container(self, container_id: str) -> None:
        client = await self._call("connect", self._get_client)
        await self._call("start", client.start, container_id, container_id=container_id)

    async def inspect_container(self, container_id: str) -> ContainerInspection:
        client = await self._call("connect", self._get_client)
        details = await self._call(
            "inspect",
            client.inspect_container,
            container_id,
            container_id=container_id,
        )
        state = details.get("State") or {}
        return ContainerInspection(
            container_id=container_id,
            network_address=self._extract_address(details.get("NetworkSettings") or {}),
            running=bool(state.get("Running", False)),
        )

    @staticmethod
    def _extract_address(network_settings: Dict[str, Any]) -> str:
        address = network_settings.get("IPAddress") or ""
        if address:
            return address

        # Newer engines only report addresses per attached network.
        for network in (network_settings.get("Networks") or {}).values():
            if network and network.get("IPAddress"):
                return network["IPAddress"]
        return ""

    async def close(self) -> None:
        if self._client is not None:
            await asyncio.to_thread(self._client.close)
            self._client = None
