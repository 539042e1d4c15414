"""
Context assembly.

Pulls fragments from the knowledge sources one type at a time, in fixed
priority order, until the token budget is used up. Types are fetched
sequentially because each one's budget depends on what came before.
"""

import logging
from typing import Callable, Sequence

from ..errors import SourceRetrievalError
from ..sources.knowledge import KnowledgeBase, SourceResult
from ..sources.models import Entity, EntityKind, Event
from .budget import TokenBudget
from .render import (
    render_characters,
    render_events,
    render_factions,
    render_items,
    render_locations,
    render_lore,
    render_session_history,
    render_world_state,
)
from .types import AssembledContext, ContextRequest, ContextType, RenderedFragment, prioritize


logger = logging.getLogger(__name__)

ENTITY_TYPES: dict[ContextType, tuple[EntityKind, Callable[[Sequence], str]]] = {
    ContextType.CHARACTER: (EntityKind.CHARACTER, render_characters),
    ContextType.LOCATION: (EntityKind.LOCATION, render_locations),
    ContextType.FACTION: (EntityKind.FACTION, render_factions),
    ContextType.ITEM: (EntityKind.ITEM, render_items),
}


class ContextAssembler:
    """
    Builds prompt context from the knowledge sources.

    Never raises: a failing source contributes nothing and is recorded
    in AssembledContext.failures.
    """

    def __init__(self, knowledge: KnowledgeBase):
        self.knowledge = knowledge

    async def assemble_context(self, request: ContextRequest | None = None, **kwargs) -> str:
        """Assembled context as a single string."""
        assembled = await self.assemble(request, **kwargs)
        return assembled.text

    async def assemble(self, request: ContextRequest | None = None, **kwargs) -> AssembledContext:
        """
        Assemble context for a request.

        Keyword arguments build a ContextRequest when none is given.
        """
        request = request or ContextRequest(**kwargs)
        ordered = prioritize(request.types)
        budget = TokenBudget(request.max_tokens)
        result = AssembledContext()

        logger.debug(
            f"Assembling context: types={[t.value for t in ordered]} "
            f"max_items={request.max_items} session={request.session_id}"
        )

        for position, ctx_type in enumerate(ordered):
            if budget.exhausted:
                result.skipped = ordered[position:]
                logger.debug(f"Token budget exhausted, skipping {[t.value for t in result.skipped]}")
                break

            try:
                text, errors = await self._retrieve(ctx_type, request)
            except Exception as e:
                logger.error(f"Error retrieving {ctx_type.value} context: {e}")
                text, errors = "", [SourceRetrievalError("context", ctx_type.value, e)]

            if errors:
                result.failures[ctx_type] = "; ".join(str(e) for e in errors)

            if text:
                cost = budget.spend(text)
                result.fragments.append(RenderedFragment(ctx_type, text, cost))
                logger.debug(f"{ctx_type.value}: {cost} tokens, {budget.remaining} remaining")

        result.remaining_tokens = budget.remaining
        return result

    async def _retrieve(
        self,
        ctx_type: ContextType,
        request: ContextRequest,
    ) -> tuple[str, list[SourceRetrievalError]]:
        if ctx_type in ENTITY_TYPES:
            kind, render = ENTITY_TYPES[ctx_type]
            entities, errors = await self._resolve_entities(kind, request)
            return render(entities), errors
        if ctx_type == ContextType.EVENT:
            return await self._events(request)
        if ctx_type == ContextType.LORE:
            return await self._lore(request)
        if ctx_type == ContextType.SESSION_HISTORY:
            return await self._session_history(request)
        if ctx_type == ContextType.WORLD_STATE:
            return await self._world_state(request)
        return "", []

    # -------------------------------------------------------------------------
    # Retrieval policies
    # -------------------------------------------------------------------------

    async def _resolve_entities(
        self,
        kind: EntityKind,
        request: ContextRequest,
    ) -> tuple[list[Entity], list[SourceRetrievalError]]:
        """
        Pick entities of one kind.

        Explicit ids win; otherwise a query selects entities named in the
        matching knowledge entries; otherwise take an unfiltered sample.
        """
        kb = self.knowledge
        limit = request.max_items

        if request.include_ids:
            found = await kb.entities_by_id(kind, request.include_ids, limit)
            return found.items[:limit], _errors(found)

        if request.query:
            matches = await kb.search_knowledge(request.query, limit, category=kind.value)
            if not matches.items:
                return [], _errors(matches)
            everything = await kb.all_entities(kind)
            contents = [m.content.lower() for m in matches.items if m.content]
            relevant = [
                entity for entity in everything.items
                if entity.display_name
                and any(entity.display_name.lower() in content for content in contents)
            ]
            return relevant[:limit], _errors(matches, everything)

        sample = await kb.sample_entities(kind, limit)
        return sample.items[:limit], _errors(sample)

    async def _events(self, request: ContextRequest) -> tuple[str, list[SourceRetrievalError]]:
        events, errors = await self._resolve_entities(EntityKind.EVENT, request)

        if request.query:
            related = await self.knowledge.related_story_events(request.query, request.max_items)
            errors += _errors(related)
            seen = {(e.id, e.display_name) for e in events}
            for story_event in related.items:
                event = story_event.to_event()
                if (event.id, event.display_name) not in seen:
                    events.append(event)
                    seen.add((event.id, event.display_name))

        events = [e for e in events if isinstance(e, Event)][:request.max_items]
        return render_events(events), errors

    async def _lore(self, request: ContextRequest) -> tuple[str, list[SourceRetrievalError]]:
        if not request.query:
            return "", []
        found = await self.knowledge.search_knowledge(request.query, request.max_items)
        return render_lore(found.items), _errors(found)

    async def _session_history(self, request: ContextRequest) -> tuple[str, list[SourceRetrievalError]]:
        if not request.session_id:
            return "", []
        found = await self.knowledge.recent_messages(request.session_id, request.max_items)
        return render_session_history(found.items), _errors(found)

    async def _world_state(self, request: ContextRequest) -> tuple[str, list[SourceRetrievalError]]:
        if not request.session_id:
            return "", []
        found = await self.knowledge.current_world_state(request.session_id)
        state = found.first()
        if state is None:
            return "", _errors(found)
        return render_world_state(state), _errors(found)


def _errors(*results: SourceResult) -> list[SourceRetrievalError]:
    return [r.error for r in results if r.error is not None]
