"""Public resolution endpoints for question sets and results packs.

Preview content is only returned to privileged callers; everyone else gets
the published revision or the bundled fallback.
"""

from fastapi import APIRouter, Depends, HTTPException, Query

from app.api.deps import get_content_config, get_resolver
from app.core.auth import Actor, get_current_actor
from app.domain.config import ContentConfig
from app.domain.content import QuestionSetKey, ResultsPackKey, normalize_level_id, parse_version
from app.schemas.content import (
    QuestionSetResolveRequest,
    ResolveResponse,
    ResultsPackResolveRequest,
)
from app.services.resolver import ContentResolver, ResolvedContent

router = APIRouter()


def _response(resolved: ResolvedContent) -> ResolveResponse:
    return ResolveResponse(
        document=resolved.document,
        source=resolved.source,
        tier=resolved.tier,
        content_hash=resolved.content_hash,
        resolved_at=resolved.resolved_at,
        revision_number=resolved.revision_number,
        pin=resolved.pin,
        new_pin=resolved.new_pin,
    )


def _results_key(assessment_type: str, results_version: str, level_id: str, config: ContentConfig) -> ResultsPackKey:
    normalized = normalize_level_id(level_id, dict(config.level_aliases))
    if normalized is None:
        raise HTTPException(
            status_code=422,
            detail=f"Unknown level '{level_id}'. Expected level1..level4 or a configured alias.",
        )
    return ResultsPackKey(assessment_type, results_version, normalized)


@router.get("/question-sets/resolve", response_model=ResolveResponse)
async def resolve_question_set(
    assessment_type: str = Query("gut-check", min_length=1),
    version: str | None = Query(None, description="Assessment version, e.g. 2 or v2"),
    locale: str | None = None,
    preview: bool = False,
    actor: Actor = Depends(get_current_actor),
    resolver: ContentResolver = Depends(get_resolver),
):
    """Resolve the question set to show for an assessment version."""
    descriptor = QuestionSetKey(assessment_type, str(parse_version(version)), locale)
    resolved = await resolver.resolve(descriptor, preview=preview, role=actor.role)
    return _response(resolved)


@router.post("/question-sets/resolve", response_model=ResolveResponse)
async def resolve_question_set_pinned(
    request: QuestionSetResolveRequest,
    actor: Actor = Depends(get_current_actor),
    resolver: ContentResolver = Depends(get_resolver),
):
    """Resolve with an optional pin from a previous resolution."""
    descriptor = QuestionSetKey(request.assessment_type, request.assessment_version, request.locale)
    resolved = await resolver.resolve(descriptor, pin=request.pin, preview=request.preview, role=actor.role)
    return _response(resolved)


@router.get("/results-packs/{assessment_type}/{results_version}/{level_id}", response_model=ResolveResponse)
async def resolve_results_pack(
    assessment_type: str,
    results_version: str,
    level_id: str,
    preview: bool = False,
    actor: Actor = Depends(get_current_actor),
    resolver: ContentResolver = Depends(get_resolver),
    config: ContentConfig = Depends(get_content_config),
):
    descriptor = _results_key(assessment_type, results_version, level_id, config)
    resolved = await resolver.resolve(descriptor, preview=preview, role=actor.role)
    return _response(resolved)


@router.post("/results-packs/resolve", response_model=ResolveResponse)
async def resolve_results_pack_pinned(
    request: ResultsPackResolveRequest,
    actor: Actor = Depends(get_current_actor),
    resolver: ContentResolver = Depends(get_resolver),
    config: ContentConfig = Depends(get_content_config),
):
    """Resolve a results pack, honouring the pin stored with a submission."""
    descriptor = _results_key(request.assessment_type, request.results_version, request.level_id, config)
    resolved = await resolver.resolve(descriptor, pin=request.pin, preview=request.preview, role=actor.role)
    return _response(resolved)
