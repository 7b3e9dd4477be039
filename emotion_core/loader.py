"""
Model loader: try an ordered list of (model, device) candidates until one builds.

State machine: uninitialized -> initializing -> ready | failed.
"""
from __future__ import annotations
from typing import Callable, List, Optional, Sequence
import asyncio
import logging

from emotion_core.backends import ClassifierHandle
from emotion_core.errors import AllModelCandidatesFailed, ModelCandidateLoadFailed
from emotion_core.models import LoaderState, LoaderStatus, ModelCandidate

logger = logging.getLogger(__name__)

ClassifierFactory = Callable[[ModelCandidate], ClassifierHandle]


class ModelLoader:
    """Owns the classifier handle and at most one in-flight load."""
    def __init__(self, candidates: Sequence[ModelCandidate], factory: ClassifierFactory):
        self.candidates: List[ModelCandidate] = list(candidates)
        self._factory = factory
        self._state: LoaderState = "uninitialized"
        self._handle: Optional[ClassifierHandle] = None
        self._loaded: Optional[ModelCandidate] = None
        self._failures: List[ModelCandidateLoadFailed] = []
        self._task: Optional[asyncio.Task] = None

    @property
    def state(self) -> LoaderState:
        return self._state

    @property
    def handle(self) -> Optional[ClassifierHandle]:
        return self._handle

    def is_ready(self) -> bool:
        return self._state == "ready"

    def status(self) -> LoaderStatus:
        return LoaderStatus(
            state=self._state,
            model=self._loaded.model if self._loaded else None,
            device=self._loaded.device if self._loaded else None,
            errors=[str(f) for f in self._failures],
        )

    async def initialize(self) -> None:
        """
        Load the first candidate that builds.

        Callers arriving while a load is in flight wait on that same load;
        calls in `ready` or `failed` return immediately. A load abandoned by
        dispose() returns without a model.

        Raises:
            AllModelCandidatesFailed: every candidate failed (this attempt only).
        """
        if self._state in ("ready", "failed"):
            return
        if self._task is None:
            self._state = "initializing"
            self._task = asyncio.ensure_future(self._load())
        task = self._task
        try:
            # shield: a cancelled caller must not abort the shared load
            await asyncio.shield(task)
        except asyncio.CancelledError:
            if not task.cancelled():
                raise
            logger.info("[loader] model load was disposed before completing")

    async def _load(self) -> None:
        logger.info("[loader] initializing emotion detection model...")
        failures: List[ModelCandidateLoadFailed] = []
        for candidate in self.candidates:
            logger.info(f"[loader] trying model={candidate.model} device={candidate.device}")
            try:
                handle = await asyncio.to_thread(self._factory, candidate)
            except Exception as e:
                failure = ModelCandidateLoadFailed(candidate, e)
                logger.warning(f"[loader] {failure}")
                failures.append(failure)
                continue
            self._handle = handle
            self._loaded = candidate
            self._failures = failures
            self._state = "ready"
            logger.info(f"[loader] model initialized with {candidate}")
            return

        self._failures = failures
        self._state = "failed"
        err = AllModelCandidatesFailed(failures)
        logger.error(f"[loader] {err}")
        raise err

    def dispose(self) -> None:
        """Drop the handle and return to `uninitialized` so a fresh attempt can start."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        self._handle = None
        self._loaded = None
        self._failures = []
        self._state = "uninitialized"
