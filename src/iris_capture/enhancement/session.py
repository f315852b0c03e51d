"""
Model Session Lifecycle
=======================

Lazily constructed, memoized ONNX Runtime session for super-resolution.

Design Rules:
    - The session is constructed AT MOST ONCE per SessionProvider
    - Concurrent first callers share the single construction (lock-guarded)
    - A failed construction is memoized as "unavailable"; later calls do
      not retry, so a missing model costs one lookup per process
    - The provider is owned by the engine that uses it, never a module global
"""

import asyncio
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Optional, Protocol, Sequence


logger = logging.getLogger(__name__)


class ModelUnavailableError(Exception):
    """Raised when the model file cannot be resolved or loaded."""
    pass


class ModelAssetResolver(Protocol):
    """Supplies the local path of the bundled model before first inference."""

    def resolve(self) -> Optional[Path]:
        """
        Resolve the model path.

        Returns:
            Existing model path, or None if the asset is unavailable
        """
        ...


class LocalModelResolver:
    """Resolves a model file from a fixed filesystem path."""

    def __init__(self, model_path: str) -> None:
        self.model_path = model_path

    def resolve(self) -> Optional[Path]:
        path = Path(self.model_path).expanduser()
        if not path.is_file():
            logger.warning(f"Super-resolution model not found: {path}")
            return None
        return path


def create_onnx_session(model_path: Path, providers: Sequence[str] = ("CPUExecutionProvider",)) -> Any:
    """
    Create an ONNX Runtime inference session.

    Requested providers that are not available in the installed runtime
    are dropped; CPU is used if none remain.

    Args:
        model_path: Path to the .onnx model
        providers: Preferred execution providers, in order

    Returns:
        onnxruntime.InferenceSession
    """
    import onnxruntime as ort

    available = set(ort.get_available_providers())
    selected = [provider for provider in providers if provider in available]
    if not selected:
        selected = ["CPUExecutionProvider"]

    session = ort.InferenceSession(str(model_path), providers=selected)
    logger.info(f"ONNX session created from {model_path} with providers={selected}")
    return session


SessionFactory = Callable[[Path], Any]


class SessionProvider:
    """
    Once-only holder of the inference session.

    Attributes:
        resolver: Model asset resolver
        factory: Callable creating a session from a model path
    """

    def __init__(self, resolver: ModelAssetResolver, factory: SessionFactory) -> None:
        self.resolver = resolver
        self.factory = factory

        self._lock = threading.Lock()
        self._initialized: bool = False
        self._session: Any = None
        self._error: Optional[str] = None
        self._construction_count: int = 0

    @property
    def initialized(self) -> bool:
        """True once construction has been attempted."""
        return self._initialized

    @property
    def error(self) -> Optional[str]:
        """Why the session is unavailable, if it is."""
        return self._error

    @property
    def construction_count(self) -> int:
        """Number of construction attempts (0 or 1)."""
        return self._construction_count

    def get(self) -> Any:
        """
        Return the session, constructing it on first call.

        Blocks while another caller is constructing it.

        Returns:
            The session, or None if it could not be constructed
        """
        if self._initialized:
            return self._session

        with self._lock:
            if not self._initialized:
                self._construction_count += 1
                try:
                    self._session = self._construct()
                except Exception as e:
                    self._session = None
                    self._error = str(e) or type(e).__name__
                    logger.warning(f"Super-resolution model unavailable: {self._error}")
                self._initialized = True

        return self._session

    async def aget(self) -> Any:
        """Async variant of get(); construction runs in a worker thread."""
        if self._initialized:
            return self._session
        return await asyncio.to_thread(self.get)

    def _construct(self) -> Any:
        model_path = self.resolver.resolve()
        if model_path is None:
            raise ModelUnavailableError("Model asset could not be resolved")

        session = self.factory(model_path)
        if session is None:
            raise ModelUnavailableError(f"Session factory returned None for {model_path}")

        logger.info("On-device super-resolution session initialised")
        return session
