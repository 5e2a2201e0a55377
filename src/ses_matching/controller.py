"""Form state and the controller that runs register/search actions.

The controller is the single orchestration point for one form instance. It
never mutates state in place: every action takes a ``FormState`` and returns
a new one, so the UI only has to store whatever comes back.

State machine per action::

    idle -> submitting -> success | failed

``success`` and ``failed`` accept a new action just like ``idle``. While an
action is in flight the controller refuses a second one. Failures
are logged and otherwise swallowed; the previous response stays displayed.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from enum import Enum

from loguru import logger
from pydantic import BaseModel, ConfigDict

from ses_matching.config import AppConfig, FormConfig
from ses_matching.embedding import EmbeddingClient, create_embedding_client
from ses_matching.index import VectorIndex, create_index
from ses_matching.models import (
    Action,
    ApiResponse,
    Category,
    Entry,
    MatchResult,
    complement,
)
from ses_matching.query import (
    build_query_filter,
    build_query_request,
    build_upsert_payload,
    shape_results,
)


class Phase(str, Enum):
    """Where a form is in its current action: idle -> submitting -> success | failed."""

    IDLE = "idle"
    SUBMITTING = "submitting"
    SUCCESS = "success"
    FAILED = "failed"


class FormState(BaseModel):
    """Everything one form instance knows: field values, phase, last response."""

    model_config = ConfigDict(frozen=True)

    content: str = ""
    id: str = ""
    category: Category | None = None
    phase: Phase = Phase.IDLE
    last_response: ApiResponse | None = None

    @property
    def is_busy(self) -> bool:
        return self.phase is Phase.SUBMITTING

    @property
    def can_submit(self) -> bool:
        """Both action buttons are enabled only when this is true."""
        return bool(self.content) and not self.is_busy

    def edit(self, **fields: object) -> FormState:
        """Return a copy with updated field values."""
        return self.model_copy(update=fields)


class MatchingController:
    """Runs form actions against an embedding client and a vector index."""

    def __init__(
        self,
        embedder: EmbeddingClient,
        index: VectorIndex,
        form_config: FormConfig | None = None,
    ):
        self.embedder = embedder
        self.index = index
        self.form_config = form_config or FormConfig()
        self._in_flight: Action | None = None

    @classmethod
    def from_config(cls, config: AppConfig) -> MatchingController:
        return cls(
            embedder=create_embedding_client(config.embedding),
            index=create_index(config.index),
            form_config=config.form,
        )

    @property
    def categories_enabled(self) -> bool:
        return self.form_config.categories_enabled

    @property
    def is_busy(self) -> bool:
        """True while an action started through this controller is running."""
        return self._in_flight is not None

    def initial_state(self) -> FormState:
        category = self.form_config.default_category if self.categories_enabled else None
        return FormState(category=category)

    def reset(self, state: FormState) -> FormState:
        return state.edit(phase=Phase.IDLE)

    async def handle_action(
        self,
        state: FormState,
        action: Action,
        on_change: Callable[[FormState], None] | None = None,
    ) -> FormState:
        """Run one action and return the resulting state.

        Only one action runs per controller at a time. A call made while another
        is in flight is ignored, as is a call from a state that cannot submit.

        Args:
            state: Current form state
            action: Register or search
            on_change: Called with the ``submitting`` state before any service
                call, so the owner can disable its controls while waiting

        Returns:
            New state in phase ``success`` or ``failed``; the unchanged state if
            the form cannot submit right now
        """
        if self._in_flight is not None or not state.can_submit:
            phase = Phase.SUBMITTING if self._in_flight is not None else state.phase
            logger.warning(f"Ignoring {action.value}: form cannot submit in phase {phase.value}")
            return state

        # Claimed before the first await
        self._in_flight = action
        submitting = state.edit(phase=Phase.SUBMITTING)
        logger.debug(f"{action.value}: {state.phase.value} -> {submitting.phase.value}")

        try:
            if on_change is not None:
                on_change(submitting)
            entry = self._entry_for(submitting)
            if action is Action.REGISTER:
                response = await self.register(entry)
            else:
                response = await self.search(entry)
        except Exception as e:
            logger.error(f"{action.value} failed: {e!r}")
            return submitting.edit(phase=Phase.FAILED)
        finally:
            self._in_flight = None

        logger.debug(f"{action.value}: {submitting.phase.value} -> {Phase.SUCCESS.value}")
        return submitting.edit(phase=Phase.SUCCESS, last_response=response)

    async def register(self, entry: Entry) -> ApiResponse:
        """Embed the entry and upsert it into the index."""
        vector = await self.embedder.embed_single(entry.content)
        record = build_upsert_payload(entry, vector, id_scheme=self.form_config.record_id_scheme)
        await self.index.upsert([record])
        logger.info(f"Registered {record.record_id}")

        summary = f"Registered: {entry.content}"
        if entry.id:
            summary += f", ID: {entry.id}"
        if entry.category is not None:
            summary += f", category: {entry.category.value}"
        return ApiResponse(content=summary, action=Action.REGISTER)

    async def search(self, entry: Entry) -> ApiResponse:
        """Embed the entry and query the index for the best matches."""
        vector = await self.embedder.embed_single(entry.content)
        query_filter = build_query_filter(id=entry.id, category=entry.category)
        request = build_query_request(vector, query_filter)
        raw_matches = await self.index.query(request)
        cleaned = shape_results(raw_matches)
        logger.info(
            f"Search returned {len(cleaned)} matches (filter={query_filter.to_pinecone()})"
        )

        rendered = json.dumps(cleaned, ensure_ascii=False)
        if entry.category is not None:
            summary = (
                f"Search results ({entry.category.value} searching, "
                f"{complement(entry.category).value} extracted): {rendered}"
            )
        else:
            summary = f"Search results: {rendered}"

        return ApiResponse(
            content=summary,
            action=Action.SEARCH,
            matches=[MatchResult.model_validate(match) for match in cleaned],
        )

    def _entry_for(self, state: FormState) -> Entry:
        category = state.category if self.categories_enabled else None
        return Entry(content=state.content, id=state.id, category=category)
